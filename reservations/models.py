from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone

from books.models import Book, Stock


def expiration_window():
    hours = getattr(settings, "CIRCULATION", {}).get("RESERVATION_EXPIRATION_HOURS", 48)
    return timedelta(hours=int(hours))


class ReservationQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=Reservation.ACTIVE_STATUSES)

    def pending(self):
        return self.filter(status=Reservation.Status.PENDING)

    def in_promotion_order(self):
        return self.order_by("created_at", "id")


class Reservation(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        AVAILABLE = "available", "Available for pickup"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    ACTIVE_STATUSES = (Status.PENDING, Status.AVAILABLE)

    book = models.ForeignKey(Book, on_delete=models.CASCADE, related_name="reservations")
    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reservations",
    )
    created_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.PENDING
    )
    # The stock record a unit was taken from when the reservation was promoted
    assigned_stock = models.ForeignKey(
        Stock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="held_reservations",
    )
    available_at = models.DateTimeField(null=True, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["book", "status", "created_at"], name="reservation_queue_idx"
            ),
            models.Index(
                fields=["status", "available_at"], name="reservation_expiry_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["member", "book"],
                condition=models.Q(status__in=["pending", "available"]),
                name="one_active_reservation_per_member_and_book",
            ),
        ]

    def __str__(self):
        return f"Reservation {self.id}: {self.book} for member {self.member_id} ({self.status})"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    @property
    def expiration_date(self):
        """Pickup deadline once the reservation is available."""
        if self.available_at is None:
            return None
        return self.available_at + expiration_window()
