from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["id", "member", "type", "delivered", "created_at"]
    list_filter = ["type", "delivered", "created_at"]
    search_fields = ["member__email", "message"]
    readonly_fields = ["member", "type", "message", "delivered", "created_at"]
