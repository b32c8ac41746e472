import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from books import ledger
from history.audit import log_activity
from history.services import record_event
from library_service.exceptions import (
    CopiesAvailable,
    DuplicateReservation,
    InvalidReservationState,
    MemberNotFound,
    ReservationNotFound,
)
from notifications.models import Notification
from notifications.services import notify_member
from reservations.models import Reservation, expiration_window
from users.directory import member_exists

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("status", "created_at", "available_at")


def get_reservation(reservation_id, for_update=False):
    queryset = Reservation.objects.select_related("book")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=reservation_id)
    except Reservation.DoesNotExist:
        raise ReservationNotFound()


def _has_active(member_id, book_id, exclude_id=None):
    queryset = Reservation.objects.active().filter(member_id=member_id, book_id=book_id)
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.exists()


def create_reservation(member_id, book_id):
    """Queue a member for a book that has no copy on the shelf."""
    if not member_exists(member_id):
        raise MemberNotFound()

    with transaction.atomic():
        # Holding the stock row keeps a concurrent return from freeing a copy
        # between the availability check and the insert.
        ledger.lock(book_id)

        if _has_active(member_id, book_id):
            raise DuplicateReservation()

        if ledger.is_available(book_id):
            raise CopiesAvailable()

        try:
            with transaction.atomic():
                reservation = Reservation.objects.create(
                    member_id=member_id,
                    book_id=book_id,
                    status=Reservation.Status.PENDING,
                    created_at=timezone.now(),
                )
        except IntegrityError:
            raise DuplicateReservation()

    record_event(member_id, "Reservation", reservation_id=reservation.id)
    log_activity(
        member_id,
        "CreateReservation",
        f"ReservationId={reservation.id}, BookId={book_id}",
    )
    logger.info(f"Reservation {reservation.id} created for book {book_id} by member {member_id}")
    return reservation


def list_pending_for_title(book_id):
    """Pending reservations for a book, in the order they will be served."""
    return (
        Reservation.objects.pending()
        .filter(book_id=book_id)
        .select_related("book", "member")
        .in_promotion_order()
    )


def list_active_for_member(member_id):
    return (
        Reservation.objects.active()
        .filter(member_id=member_id)
        .select_related("book")
        .in_promotion_order()
    )


@transaction.atomic
def update_reservation(reservation_id, **changes):
    """
    Administrative correction of status or dates. Stock is never touched
    here; use cancel_reservation to release a held copy.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot edit reservation fields: {', '.join(sorted(unknown))}")

    reservation = get_reservation(reservation_id, for_update=True)
    for field, value in changes.items():
        setattr(reservation, field, value)

    if reservation.status in Reservation.ACTIVE_STATUSES and _has_active(
        reservation.member_id, reservation.book_id, exclude_id=reservation.id
    ):
        raise DuplicateReservation()

    reservation.save(update_fields=list(changes) or None)

    details = ", ".join(f"{field}={value}" for field, value in changes.items())
    log_activity(
        reservation.member_id,
        "UpdateReservation",
        f"ReservationId={reservation.id}, {details}".rstrip(", "),
    )
    return reservation


@transaction.atomic
def delete_reservation(reservation_id):
    """Administrative removal. Stock is never touched here."""
    reservation = get_reservation(reservation_id, for_update=True)
    log_activity(
        reservation.member_id, "DeleteReservation", f"ReservationId={reservation.id}"
    )
    reservation.delete()


def cancel_reservation(reservation_id):
    """
    Withdraw an active reservation. A copy already held for the member goes
    back to general stock; it is not handed to the next member in line.
    """
    book_id = get_reservation(reservation_id).book_id

    with transaction.atomic():
        ledger.lock(book_id)
        reservation = get_reservation(reservation_id, for_update=True)

        if reservation.status not in Reservation.ACTIVE_STATUSES:
            raise InvalidReservationState(
                f"Reservation is {reservation.status} and cannot be cancelled."
            )

        if (
            reservation.status == Reservation.Status.AVAILABLE
            and reservation.assigned_stock_id
        ):
            ledger.increment(book_id)

        reservation.status = Reservation.Status.CANCELLED
        reservation.save(update_fields=["status"])

    record_event(reservation.member_id, "ReservationCancelled", reservation_id=reservation.id)
    log_activity(
        reservation.member_id, "CancelReservation", f"ReservationId={reservation.id}"
    )
    return reservation


def _expire_one(reservation_id, book_id, threshold):
    with transaction.atomic():
        ledger.lock(book_id)
        reservation = (
            Reservation.objects.select_for_update()
            .select_related("book")
            .filter(
                pk=reservation_id,
                status=Reservation.Status.AVAILABLE,
                available_at__lte=threshold,
            )
            .first()
        )
        # Picked up, cancelled or already expired since the sweep started
        if reservation is None:
            return None

        if reservation.assigned_stock_id:
            ledger.increment(book_id)

        reservation.status = Reservation.Status.EXPIRED
        reservation.save(update_fields=["status"])

        record_event(
            reservation.member_id, "ReservationExpired", reservation_id=reservation.id
        )
    return reservation


def expire_reservations(now=None, should_stop=None):
    """
    Expire reservations left available for pickup longer than the expiration
    window and release their copies to general stock.

    Each reservation is handled in its own transaction and should_stop() is
    checked between reservations, so an interrupted sweep can simply run again.
    Returns the number of reservations expired.
    """
    now = now or timezone.now()
    threshold = now - expiration_window()

    candidates = list(
        Reservation.objects.filter(
            status=Reservation.Status.AVAILABLE,
            available_at__isnull=False,
            available_at__lte=threshold,
        )
        .order_by("available_at", "id")
        .values_list("id", "book_id")
    )

    processed = 0
    for reservation_id, book_id in candidates:
        if should_stop is not None and should_stop():
            logger.info(
                f"Expiry sweep stopped after {processed} of {len(candidates)} reservations"
            )
            break

        reservation = _expire_one(reservation_id, book_id, threshold)
        if reservation is None:
            continue
        processed += 1

        logger.info(f"Reservation {reservation.id} expired, copy of book {book_id} released")
        notify_member(
            reservation.member_id,
            f"Your reservation for '{reservation.book.title}' expired because it "
            f"was not picked up in time.",
            Notification.Type.RESERVATION_EXPIRED,
        )

    return processed
