"""
Stock ledger: the only code allowed to change Stock.quantity.

Every mutation is a single conditional UPDATE with an F() expression, so two
concurrent borrowers of the last copy cannot both win. Callers that need to
serialize a read-then-write sequence for one title (returns, handoffs,
reservation creation) take the row lock with ``lock()`` first.
"""

import logging
import time

from django.conf import settings
from django.db import OperationalError, models, transaction

from books.models import Stock
from library_service.exceptions import InvalidAdjustment, StockConflict, TitleNotFound

logger = logging.getLogger(__name__)


def _conflict_settings():
    circulation = getattr(settings, "CIRCULATION", {})
    return (
        int(circulation.get("STOCK_CONFLICT_RETRIES", 1)),
        float(circulation.get("STOCK_CONFLICT_BACKOFF_SECONDS", 0.05)),
    )


def _apply(book_id, queryset_filter, delta):
    """Run one conditional update, retrying once on a database conflict."""
    retries, backoff = _conflict_settings()
    attempt = 0
    while True:
        try:
            with transaction.atomic():
                return Stock.objects.filter(book_id=book_id, **queryset_filter).update(
                    quantity=models.F("quantity") + delta
                )
        except OperationalError as exc:
            if attempt >= retries:
                logger.error(
                    f"Stock update for book {book_id} failed after "
                    f"{attempt + 1} attempts: {exc}"
                )
                raise StockConflict() from exc
            attempt += 1
            logger.warning(
                f"Stock update for book {book_id} hit a conflict ({exc}), "
                f"retrying in {backoff}s"
            )
            time.sleep(backoff)


def decrement(book_id):
    """Take one copy off the shelf. Returns False without mutating if none are left."""
    updated = _apply(book_id, {"quantity__gt": 0}, -1)
    if updated:
        logger.debug(f"Stock for book {book_id} decremented")
    return bool(updated)


def increment(book_id):
    """Put one copy back on the shelf."""
    updated = _apply(book_id, {}, 1)
    if not updated:
        raise TitleNotFound(f"No stock record for book {book_id}.")
    logger.debug(f"Stock for book {book_id} incremented")


def is_available(book_id):
    return Stock.objects.filter(book_id=book_id, quantity__gt=0).exists()


def get_stock(book_id):
    try:
        return Stock.objects.get(book_id=book_id)
    except Stock.DoesNotExist:
        raise TitleNotFound()


def lock(book_id):
    """
    Lock the stock row for the rest of the current transaction.
    Must be called inside transaction.atomic().
    """
    try:
        return Stock.objects.select_for_update().get(book_id=book_id)
    except Stock.DoesNotExist:
        raise TitleNotFound()


@transaction.atomic
def adjust(book_id, delta):
    """Administrative correction of the shelf count (copies bought, lost or withdrawn)."""
    if delta == 0:
        raise InvalidAdjustment("Adjustment cannot be zero.")

    stock = lock(book_id)
    if stock.quantity + delta < 0:
        raise InvalidAdjustment(
            f"Adjustment of {delta} would make quantity negative "
            f"(currently {stock.quantity})."
        )

    _apply(book_id, {}, delta)
    stock.refresh_from_db()
    logger.info(f"Stock for book {book_id} adjusted by {delta} to {stock.quantity}")
    return stock
