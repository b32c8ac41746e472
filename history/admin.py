from django.contrib import admin

from history.models import History


@admin.register(History)
class HistoryAdmin(admin.ModelAdmin):
    list_display = ["id", "member", "event_type", "loan", "reservation", "event_date"]
    list_filter = ["event_type", "event_date"]
    search_fields = ["member__email", "member__username", "event_type"]
    readonly_fields = ["member", "event_type", "loan", "reservation", "event_date"]
