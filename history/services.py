import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from history.models import History

logger = logging.getLogger(__name__)


def record_event(member_id, event_type, loan_id=None, reservation_id=None):
    """
    Append a history event for a member.

    Runs in its own savepoint: a failure is logged and never rolls back or
    fails the circulation change that triggered it. Returns the History row,
    or None when it could not be written.
    """
    if not event_type or not event_type.strip():
        raise ValueError("Event type must be provided.")

    try:
        with transaction.atomic():
            return History.objects.create(
                member_id=member_id,
                event_type=event_type,
                loan_id=loan_id,
                reservation_id=reservation_id,
                event_date=timezone.now(),
            )
    except DatabaseError as e:
        logger.error(
            f"Failed to record history event {event_type} for member {member_id} "
            f"(loan={loan_id}, reservation={reservation_id}): {e}"
        )
        return None


def history_for_member(member_id):
    return History.objects.filter(member_id=member_id).order_by("-event_date", "-id")
