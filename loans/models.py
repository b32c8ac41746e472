from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from books.models import Book, Stock


class LoanQuerySet(models.QuerySet):
    def active(self):
        return self.filter(return_date__isnull=True)

    def returned(self):
        return self.filter(return_date__isnull=False)


class Loan(models.Model):
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name="loans")
    member = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="loans"
    )
    stock = models.ForeignKey(Stock, on_delete=models.PROTECT, related_name="loans")
    loan_date = models.DateTimeField()
    due_date = models.DateTimeField()
    return_date = models.DateTimeField(null=True, blank=True)
    fine = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    objects = LoanQuerySet.as_manager()

    class Meta:
        ordering = ["-loan_date", "-id"]
        indexes = [
            models.Index(fields=["member", "return_date"], name="loan_member_active_idx"),
            models.Index(fields=["return_date", "due_date"], name="loan_active_due_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(fine__gte=0), name="loan_fine_not_negative"
            ),
            models.CheckConstraint(
                condition=models.Q(due_date__gt=models.F("loan_date")),
                name="loan_due_after_loan_date",
            ),
        ]

    def __str__(self):
        return f"Loan {self.id}: {self.book} to member {self.member_id}"

    @property
    def is_active(self):
        return self.return_date is None

    @property
    def is_overdue(self):
        """Active and past due right now."""
        return self.return_date is None and self.due_date < timezone.now()

    @property
    def days_overdue(self):
        """Whole days past the due date; 0 if returned on time or not yet due."""
        end = self.return_date or timezone.now()
        return max((end.date() - self.due_date.date()).days, 0)
