from django.contrib import admin

from reservations.models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "book",
        "member",
        "status",
        "created_at",
        "available_at",
        "expiration_date",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["member__email", "member__username", "book__title"]
    readonly_fields = [
        "book",
        "member",
        "status",
        "created_at",
        "assigned_stock",
        "available_at",
    ]

    def has_add_permission(self, request):
        return False
