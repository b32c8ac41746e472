from django.conf import settings
from django.db import models


class History(models.Model):
    """Append-only circulation trail for a member."""

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="history"
    )
    event_type = models.CharField(max_length=50)
    loan = models.ForeignKey(
        "loans.Loan",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="history",
    )
    reservation = models.ForeignKey(
        "reservations.Reservation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="history",
    )
    event_date = models.DateTimeField()

    class Meta:
        ordering = ["-event_date", "-id"]
        verbose_name_plural = "History"
        indexes = [
            models.Index(fields=["member", "event_date"], name="history_member_date_idx")
        ]

    def __str__(self):
        return f"{self.event_type} for member {self.member_id} at {self.event_date:%Y-%m-%d %H:%M}"
