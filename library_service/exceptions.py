import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CirculationError(Exception):
    """Base class for errors raised by the circulation services."""

    code = "circulation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Circulation request could not be completed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- NotFound -------------------------------------------------------------


class NotFound(CirculationError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class MemberNotFound(NotFound):
    code = "member_not_found"
    default_message = "Member not found."


class TitleNotFound(NotFound):
    code = "title_not_found"
    default_message = "Book not found."


class LoanNotFound(NotFound):
    code = "loan_not_found"
    default_message = "Loan not found."


class ReservationNotFound(NotFound):
    code = "reservation_not_found"
    default_message = "Reservation not found."


# --- PolicyViolation ------------------------------------------------------


class PolicyViolation(CirculationError):
    code = "policy_violation"


class LoanLimitReached(PolicyViolation):
    code = "loan_limit_reached"
    default_message = "Maximum number of active loans reached."


class AlreadyReturned(PolicyViolation):
    code = "already_returned"
    default_message = "Loan already returned."


class TitleUnavailable(PolicyViolation):
    code = "title_unavailable"
    default_message = "Book unavailable."


class DuplicateReservation(PolicyViolation):
    code = "duplicate_reservation"
    default_message = "Existing active reservation for this book."


class CopiesAvailable(PolicyViolation):
    code = "copies_available"
    default_message = "Copies available. Please borrow instead of reserving."


class InvalidAdjustment(PolicyViolation):
    code = "invalid_adjustment"
    default_message = "Invalid stock adjustment."


class InvalidReservationState(PolicyViolation):
    code = "invalid_reservation_state"
    default_message = "Reservation cannot change from its current status."


# --- Conflict -------------------------------------------------------------


class Conflict(CirculationError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StockConflict(Conflict):
    code = "stock_conflict"
    default_message = "Concurrent stock update could not be applied."


def circulation_exception_handler(exc, context):
    """
    DRF exception handler that renders circulation errors as
    {"error": ..., "code": ...} and defers everything else to DRF.
    """
    if isinstance(exc, CirculationError):
        view = context.get("view")
        logger.info(
            f"{view.__class__.__name__ if view else 'view'}: "
            f"{exc.code} ({exc.message})"
        )
        return Response(
            {"error": exc.message, "code": exc.code}, status=exc.status_code
        )
    return exception_handler(exc, context)
