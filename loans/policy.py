from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class LoanPolicy:
    """Circulation rules applied to every loan."""

    max_active_loans_per_member: int = 5
    loan_duration_days: int = 14
    late_fee_per_day: Decimal = Decimal("0.50")

    @classmethod
    def from_settings(cls):
        circulation = getattr(settings, "CIRCULATION", {})
        return cls(
            max_active_loans_per_member=int(
                circulation.get("MAX_ACTIVE_LOANS_PER_MEMBER", cls.max_active_loans_per_member)
            ),
            loan_duration_days=int(
                circulation.get("LOAN_DURATION_DAYS", cls.loan_duration_days)
            ),
            late_fee_per_day=Decimal(
                str(circulation.get("LATE_FEE_PER_DAY", cls.late_fee_per_day))
            ),
        )

    def due_date_for(self, loan_date):
        return loan_date + timedelta(days=self.loan_duration_days)

    def days_late(self, due_date, returned_at):
        """Whole calendar days between the due date and the return date (UTC)."""
        return max((returned_at.date() - due_date.date()).days, 0)

    def calculate_fine(self, due_date, returned_at):
        days = self.days_late(due_date, returned_at)
        return (self.late_fee_per_day * days).quantize(Decimal("0.01"))


def get_policy():
    return LoanPolicy.from_settings()
