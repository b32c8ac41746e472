"""
Hands a freshly returned copy to the member who has waited longest for it.

The return path increments stock first and then, if someone is waiting,
decrements it again on their behalf, so history shows both the return and
the hold. Net stock change across a return with a waiting reservation is 0.
"""

import logging

from django.db import transaction
from django.utils import timezone

from books import ledger
from history.audit import log_activity
from history.services import record_event
from library_service.exceptions import StockConflict
from notifications.models import Notification
from notifications.services import local_time, notify_member
from reservations.models import Reservation

logger = logging.getLogger(__name__)


def next_in_line(book_id):
    """Oldest pending reservation for the book, row-locked for the current transaction."""
    return (
        Reservation.objects.select_for_update()
        .pending()
        .filter(book_id=book_id)
        .in_promotion_order()
        .first()
    )


@transaction.atomic
def promote_next(book_id, now=None):
    """
    Promote the oldest pending reservation for book_id to available and hold a
    unit for it. Returns True if a reservation was promoted.

    Callers run this inside the return transaction with the stock row locked,
    which keeps promotions for one book strictly first-come, first-served.
    """
    reservation = next_in_line(book_id)
    if reservation is None:
        return False

    try:
        held = ledger.decrement(book_id)
    except StockConflict:
        held = False

    if not held:
        logger.warning(
            f"Could not hold a copy of book {book_id} for reservation "
            f"{reservation.id}; copy left in general stock"
        )
        return False

    now = now or timezone.now()
    reservation.status = Reservation.Status.AVAILABLE
    reservation.assigned_stock = ledger.get_stock(book_id)
    reservation.available_at = now
    reservation.save(update_fields=["status", "assigned_stock", "available_at"])

    record_event(
        reservation.member_id, "ReservationAvailable", reservation_id=reservation.id
    )
    log_activity(
        reservation.member_id,
        "PromoteReservation",
        f"ReservationId={reservation.id}, BookId={book_id}",
    )
    logger.info(
        f"Reservation {reservation.id} for book {book_id} is available "
        f"to member {reservation.member_id}"
    )

    deadline = local_time(reservation.expiration_date)
    message = (
        f"The book '{reservation.book.title}' is now available. "
        f"Please pick it up before {deadline:%Y-%m-%d %H:%M}."
    )
    # Delivered after commit, outside the stock row lock
    transaction.on_commit(
        lambda: notify_member(
            reservation.member_id, message, Notification.Type.RESERVATION_AVAILABLE
        )
    )
    return True
