import logging
from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from books import ledger
from history.audit import log_activity
from history.services import record_event
from library_service.exceptions import (
    AlreadyReturned,
    LoanLimitReached,
    LoanNotFound,
    MemberNotFound,
    StockConflict,
    TitleUnavailable,
)
from loans.models import Loan
from loans.policy import get_policy
from reservations import handoff
from reservations.models import Reservation
from users.directory import member_exists

logger = logging.getLogger(__name__)


@dataclass
class LoanReturnResult:
    loan: Loan
    fine: Decimal
    reservation_promoted: bool


def active_loan_count(member_id):
    return Loan.objects.active().filter(member_id=member_id).count()


def get_loan(loan_id, for_update=False):
    queryset = Loan.objects.select_related("book")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=loan_id)
    except Loan.DoesNotExist:
        raise LoanNotFound()


def _lock_member(member_id):
    # Serializes one member's concurrent borrow requests so the limit holds.
    list(
        get_user_model()
        .objects.select_for_update()
        .filter(pk=member_id)
        .values_list("pk", flat=True)
    )


@transaction.atomic
def create_loan(member_id, book_id, policy=None):
    """
    Lend one copy of a book to a member and return the new Loan.

    A member who holds an available reservation for the book takes the copy
    set aside for them; everyone else takes one from the shelf. Either way the
    member's active reservation for the book is completed.
    """
    policy = policy or get_policy()

    if not member_exists(member_id):
        raise MemberNotFound()
    _lock_member(member_id)

    if active_loan_count(member_id) >= policy.max_active_loans_per_member:
        raise LoanLimitReached(
            f"Maximum active loans ({policy.max_active_loans_per_member}) reached."
        )

    stock = ledger.lock(book_id)

    # A pending reservation is closed too, so the next return does not hold a
    # second copy for a member who already has one.
    held = (
        Reservation.objects.select_for_update()
        .active()
        .filter(member_id=member_id, book_id=book_id)
        .first()
    )

    if held is None or held.status != Reservation.Status.AVAILABLE:
        try:
            taken = ledger.decrement(book_id)
        except StockConflict:
            taken = False
        if not taken:
            raise TitleUnavailable()

    if held is not None:
        held.status = Reservation.Status.COMPLETED
        held.save(update_fields=["status"])

    now = timezone.now()
    loan = Loan.objects.create(
        book_id=book_id,
        member_id=member_id,
        stock=stock,
        loan_date=now,
        due_date=policy.due_date_for(now),
    )

    if held is not None:
        record_event(member_id, "ReservationCompleted", reservation_id=held.id)
    record_event(member_id, "Loan", loan_id=loan.id)
    log_activity(member_id, "CreateLoan", f"LoanId={loan.id}, BookId={book_id}")
    logger.info(
        f"Loan {loan.id} created: book {book_id} to member {member_id}, "
        f"due {loan.due_date:%Y-%m-%d}"
    )
    return loan


@transaction.atomic
def return_loan(loan_id, policy=None):
    """
    Close a loan, charge the late fee and hand the copy to the next
    member waiting for it, if any.
    """
    policy = policy or get_policy()

    loan = get_loan(loan_id, for_update=True)
    if loan.return_date is not None:
        raise AlreadyReturned()

    ledger.lock(loan.book_id)

    now = timezone.now()
    loan.return_date = now
    loan.fine = policy.calculate_fine(loan.due_date, now)
    loan.save(update_fields=["return_date", "fine"])

    ledger.increment(loan.book_id)

    record_event(loan.member_id, "Return", loan_id=loan.id)
    log_activity(loan.member_id, "ReturnLoan", f"LoanId={loan.id}, Fine={loan.fine}")

    promoted = handoff.promote_next(loan.book_id, now=now)

    logger.info(
        f"Loan {loan.id} returned, fine {loan.fine}, "
        f"reservation promoted: {promoted}"
    )
    return LoanReturnResult(loan=loan, fine=loan.fine, reservation_promoted=promoted)


@transaction.atomic
def update_loan_due_date(loan_id, due_date):
    """Administrative due date correction. Does not touch stock or fines."""
    loan = get_loan(loan_id, for_update=True)
    if due_date <= loan.loan_date:
        raise ValidationError({"due_date": "Due date must be after the loan date."})

    loan.due_date = due_date
    loan.save(update_fields=["due_date"])

    record_event(loan.member_id, "Update", loan_id=loan.id)
    log_activity(loan.member_id, "UpdateLoan", f"LoanId={loan.id}, DueDate={due_date:%Y-%m-%d}")
    return loan


@transaction.atomic
def delete_loan(loan_id):
    """Administrative removal of a loan record. Does not touch stock."""
    loan = get_loan(loan_id, for_update=True)

    record_event(loan.member_id, "Delete", loan_id=loan.id)
    log_activity(loan.member_id, "DeleteLoan", f"LoanId={loan.id}")
    loan.delete()
