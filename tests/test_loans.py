from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from freezegun import freeze_time

from history.models import History
from library_service.exceptions import (
    AlreadyReturned,
    LoanLimitReached,
    LoanNotFound,
    MemberNotFound,
    StockConflict,
    TitleNotFound,
    TitleUnavailable,
)
from loans.models import Loan
from loans.services import (
    active_loan_count,
    create_loan,
    delete_loan,
    return_loan,
    update_loan_due_date,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.django_db
class TestCreateLoan:
    @freeze_time("2025-03-01 12:00:00")
    def test_lends_copy_and_sets_due_date(self, member, make_book, stock_quantity):
        book = make_book(quantity=2)

        loan = create_loan(member.id, book.id)

        assert loan.due_date == utc(2025, 3, 15, 12)
        assert loan.loan_date == utc(2025, 3, 1, 12)
        assert loan.return_date is None
        assert loan.fine == Decimal("0.00")
        assert loan.stock.book_id == book.id
        assert stock_quantity(book) == 1
        assert History.objects.filter(
            member=member, event_type="Loan", loan=loan
        ).exists()

    def test_unknown_member(self, make_book, stock_quantity):
        book = make_book(quantity=1)

        with pytest.raises(MemberNotFound):
            create_loan(999999, book.id)
        assert stock_quantity(book) == 1

    def test_inactive_member(self, make_member, make_book):
        book = make_book(quantity=1)
        inactive = make_member(is_active=False)

        with pytest.raises(MemberNotFound):
            create_loan(inactive.id, book.id)

    def test_unknown_book(self, member):
        with pytest.raises(TitleNotFound):
            create_loan(member.id, 999999)

    def test_no_copies_left(self, member, make_book):
        book = make_book(quantity=0)

        with pytest.raises(TitleUnavailable):
            create_loan(member.id, book.id)
        assert Loan.objects.count() == 0

    def test_sixth_loan_is_refused_without_touching_stock(
        self, member, make_book, stock_quantity
    ):
        books = [make_book(title=f"Book {i}", quantity=1) for i in range(6)]
        for book in books[:5]:
            create_loan(member.id, book.id)

        with pytest.raises(LoanLimitReached):
            create_loan(member.id, books[5].id)

        assert stock_quantity(books[5]) == 1
        assert active_loan_count(member.id) == 5

    def test_returned_loans_do_not_count_toward_limit(self, member, make_book):
        book = make_book(quantity=6)
        loans = [create_loan(member.id, book.id) for _ in range(5)]
        return_loan(loans[0].id)

        create_loan(member.id, book.id)

        assert active_loan_count(member.id) == 5

    def test_stock_conflict_is_reported_as_unavailable(
        self, member, make_book, stock_quantity
    ):
        book = make_book(quantity=1)

        with patch("loans.services.ledger.decrement", side_effect=StockConflict()):
            with pytest.raises(TitleUnavailable):
                create_loan(member.id, book.id)

        assert Loan.objects.count() == 0
        assert stock_quantity(book) == 1

    def test_history_failure_does_not_undo_loan(self, member, make_book, stock_quantity):
        book = make_book(quantity=1)

        with patch.object(
            History.objects, "create", side_effect=DatabaseError("history store down")
        ):
            loan = create_loan(member.id, book.id)

        assert Loan.objects.filter(pk=loan.pk).exists()
        assert stock_quantity(book) == 0


@pytest.mark.django_db
class TestReturnLoan:
    def test_late_return_is_fined(self, member, make_book, stock_quantity):
        book = make_book(quantity=1)
        with freeze_time("2024-12-18 10:00:00"):
            loan = create_loan(member.id, book.id)
        assert loan.due_date == utc(2025, 1, 1, 10)

        with freeze_time("2025-01-04 09:00:00"):
            result = return_loan(loan.id)

        assert result.fine == Decimal("1.50")
        assert result.reservation_promoted is False
        loan.refresh_from_db()
        assert loan.return_date == utc(2025, 1, 4, 9)
        assert loan.fine == Decimal("1.50")
        assert stock_quantity(book) == 1

    def test_return_on_due_date_is_free(self, member, make_book):
        book = make_book(quantity=1)
        with freeze_time("2024-12-18 10:00:00"):
            loan = create_loan(member.id, book.id)

        with freeze_time("2025-01-01 23:30:00"):
            result = return_loan(loan.id)

        assert result.fine == Decimal("0.00")

    def test_already_returned(self, member, make_book, stock_quantity):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)
        return_loan(loan.id)

        with pytest.raises(AlreadyReturned):
            return_loan(loan.id)
        assert stock_quantity(book) == 1

    def test_unknown_loan(self, db):
        with pytest.raises(LoanNotFound):
            return_loan(999999)

    def test_records_return_event(self, member, make_book):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)

        return_loan(loan.id)

        assert History.objects.filter(event_type="Return", loan=loan).count() == 1


@pytest.mark.django_db
class TestAdministrativeCorrections:
    def test_due_date_update_leaves_stock_and_fine_alone(
        self, member, make_book, stock_quantity
    ):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)
        new_due = loan.due_date + timedelta(days=7)

        updated = update_loan_due_date(loan.id, new_due)

        assert updated.due_date == new_due
        assert updated.fine == Decimal("0.00")
        assert updated.return_date is None
        assert stock_quantity(book) == 0
        assert History.objects.filter(event_type="Update", loan=loan).exists()

    def test_due_date_must_follow_loan_date(self, member, make_book):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)

        with pytest.raises(ValidationError):
            update_loan_due_date(loan.id, loan.loan_date - timedelta(days=1))

    def test_delete_leaves_stock_alone(self, member, make_book, stock_quantity):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)

        delete_loan(loan.id)

        assert not Loan.objects.filter(pk=loan.pk).exists()
        assert stock_quantity(book) == 0
        event = History.objects.get(event_type="Delete")
        assert event.loan is None
        assert event.member == member

    def test_delete_unknown_loan(self, db):
        with pytest.raises(LoanNotFound):
            delete_loan(999999)
