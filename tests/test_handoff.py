from unittest.mock import patch

import pytest
from freezegun import freeze_time

from history.models import History
from loans.services import create_loan, return_loan
from notifications.models import Notification
from reservations.handoff import promote_next
from reservations.models import Reservation
from reservations.services import create_reservation


@pytest.mark.django_db
class TestPromoteOnReturn:
    def test_copies_go_to_waiting_members_in_order(
        self, make_member, make_book, stock_quantity
    ):
        book = make_book(quantity=3)
        loans = [create_loan(make_member().id, book.id) for _ in range(3)]
        waiting = []
        for minute in range(3):
            with freeze_time(f"2025-03-01 09:0{minute}:00"):
                waiting.append(create_reservation(make_member().id, book.id))

        for served, loan in enumerate(loans):
            result = return_loan(loan.id)

            assert result.reservation_promoted is True
            assert stock_quantity(book) == 0
            statuses = [
                Reservation.objects.get(pk=r.pk).status for r in waiting
            ]
            assert statuses[: served + 1] == [Reservation.Status.AVAILABLE] * (served + 1)
            assert statuses[served + 1 :] == [Reservation.Status.PENDING] * (2 - served)

    def test_same_timestamp_is_served_by_id(self, make_member, make_book):
        book = make_book(quantity=1)
        loan = create_loan(make_member().id, book.id)
        with freeze_time("2025-03-01 09:00:00"):
            first = create_reservation(make_member().id, book.id)
            second = create_reservation(make_member().id, book.id)

        return_loan(loan.id)

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == Reservation.Status.AVAILABLE
        assert second.status == Reservation.Status.PENDING

    def test_return_without_queue_restocks(self, member, make_book, stock_quantity):
        book = make_book(quantity=1)
        loan = create_loan(member.id, book.id)

        result = return_loan(loan.id)

        assert result.reservation_promoted is False
        assert stock_quantity(book) == 1

    def test_promotion_holds_unit_and_notifies(
        self, settings, member, make_member, make_book, django_capture_on_commit_callbacks
    ):
        settings.LIBRARY_TIME_ZONE = "Europe/Kyiv"
        book = make_book(title="Dune", quantity=1)
        loan = create_loan(make_member().id, book.id)
        reservation = create_reservation(member.id, book.id)

        with freeze_time("2025-03-01 10:00:00"):
            with django_capture_on_commit_callbacks(execute=True):
                return_loan(loan.id)

        reservation.refresh_from_db()
        assert reservation.assigned_stock_id == book.stock.id
        assert reservation.available_at.isoformat() == "2025-03-01T10:00:00+00:00"

        notification = Notification.objects.get(
            member=member, type=Notification.Type.RESERVATION_AVAILABLE
        )
        assert "'Dune'" in notification.message
        assert "2025-03-03 12:00" in notification.message
        assert History.objects.filter(
            event_type="ReservationAvailable", reservation=reservation
        ).exists()

    def test_member_is_notified_only_after_commit(
        self, member, make_member, make_book, django_capture_on_commit_callbacks
    ):
        book = make_book(quantity=1)
        loan = create_loan(make_member().id, book.id)
        create_reservation(member.id, book.id)

        with django_capture_on_commit_callbacks() as callbacks:
            return_loan(loan.id)
            assert not Notification.objects.filter(member=member).exists()

        assert len(callbacks) == 1
        callbacks[0]()
        assert Notification.objects.filter(
            member=member, type=Notification.Type.RESERVATION_AVAILABLE
        ).exists()

    def test_failed_hold_leaves_reservation_pending(
        self, member, make_member, make_book, stock_quantity
    ):
        book = make_book(quantity=1)
        loan = create_loan(make_member().id, book.id)
        reservation = create_reservation(member.id, book.id)

        with patch("reservations.handoff.ledger.decrement", return_value=False):
            result = return_loan(loan.id)

        assert result.reservation_promoted is False
        assert stock_quantity(book) == 1
        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.PENDING
        assert reservation.assigned_stock is None


@pytest.mark.django_db
def test_promote_next_with_empty_queue(make_book, stock_quantity):
    book = make_book(quantity=1)

    assert promote_next(book.id) is False
    assert stock_quantity(book) == 1
