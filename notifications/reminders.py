"""
Due-soon and overdue reminders for active loans.

Both passes only read loans; they never change loan, stock or reservation
state. A loan inside the reminder window is reminded on every sweep.
"""

import logging
import math
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from history.services import record_event
from loans.models import Loan
from notifications.models import Notification
from notifications.services import local_time, notify_member

logger = logging.getLogger(__name__)


def reminder_window():
    hours = getattr(settings, "CIRCULATION", {}).get("REMINDER_WINDOW_HOURS", 24)
    return timedelta(hours=int(hours))


def _active_loans():
    return Loan.objects.active().select_related("book", "member")


def _send(loan, notification_type, event_type, message, counts):
    if notify_member(loan.member_id, message, notification_type):
        counts["sent"] += 1
    else:
        counts["failed"] += 1
        counts["failed_loan_ids"].append(loan.id)
    record_event(loan.member_id, event_type, loan_id=loan.id)


def send_due_soon_reminders(now=None, should_stop=None):
    now = now or timezone.now()
    loans = _active_loans().filter(
        due_date__gte=now, due_date__lte=now + reminder_window()
    ).order_by("due_date", "id")

    counts = {"checked": 0, "sent": 0, "failed": 0, "failed_loan_ids": []}
    for loan in loans:
        if should_stop is not None and should_stop():
            break
        counts["checked"] += 1

        hours_left = max(math.ceil((loan.due_date - now).total_seconds() / 3600), 0)
        message = (
            f"Reminder: '{loan.book.title}' is due in {hours_left}h "
            f"(due at {local_time(loan.due_date):%Y-%m-%d %H:%M})."
        )
        _send(loan, Notification.Type.RETURN_REMINDER, "ReturnReminder", message, counts)

    logger.info(
        f"Due-soon reminders: {counts['checked']} loans, "
        f"{counts['sent']} sent, {counts['failed']} failed"
    )
    return counts


def send_overdue_notices(now=None, should_stop=None):
    now = now or timezone.now()
    loans = _active_loans().filter(due_date__lt=now).order_by("due_date", "id")

    counts = {"checked": 0, "sent": 0, "failed": 0, "failed_loan_ids": []}
    for loan in loans:
        if should_stop is not None and should_stop():
            break
        counts["checked"] += 1

        days_late = max(1, (now - loan.due_date).days)
        message = (
            f"Overdue: '{loan.book.title}' is {days_late} day"
            f"{'s' if days_late != 1 else ''} late. "
            f"Please return it as soon as possible."
        )
        _send(loan, Notification.Type.OVERDUE_NOTICE, "OverdueNotice", message, counts)

    logger.info(
        f"Overdue notices: {counts['checked']} loans, "
        f"{counts['sent']} sent, {counts['failed']} failed"
    )
    return counts


def run_reminder_sweep(now=None, should_stop=None):
    now = now or timezone.now()
    return {
        "due_soon": send_due_soon_reminders(now=now, should_stop=should_stop),
        "overdue": send_overdue_notices(now=now, should_stop=should_stop),
    }
