from django.conf import settings
from django.db import models


class Notification(models.Model):
    class Type(models.TextChoices):
        RESERVATION_AVAILABLE = "reservation_available", "Reservation available"
        RESERVATION_EXPIRED = "reservation_expired", "Reservation expired"
        RETURN_REMINDER = "return_reminder", "Return reminder"
        OVERDUE_NOTICE = "overdue_notice", "Overdue notice"
        INFO = "info", "Info"

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=32, choices=Type.choices, default=Type.INFO)
    message = models.CharField(max_length=1000)
    delivered = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.get_type_display()} for member {self.member_id}"
