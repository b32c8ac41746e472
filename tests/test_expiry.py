from datetime import datetime, timedelta, timezone

import pytest
from django.core.cache import cache
from freezegun import freeze_time

from history.models import History
from loans.services import create_loan, return_loan
from notifications.models import Notification
from reservations.models import Reservation
from reservations.services import create_reservation, expire_reservations
from reservations.tasks import expire_reservations_task

AVAILABLE_AT = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_held_reservation(make_member, make_book):
    """A reservation promoted to available at AVAILABLE_AT."""

    def _make(title="Dune"):
        book = make_book(title=title, quantity=1)
        loan = create_loan(make_member().id, book.id)
        reservation = create_reservation(make_member().id, book.id)
        with freeze_time(AVAILABLE_AT):
            return_loan(loan.id)
        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.AVAILABLE
        return reservation

    return _make


@pytest.mark.django_db
class TestExpireReservations:
    def test_not_expired_before_window(self, make_held_reservation, stock_quantity):
        reservation = make_held_reservation()

        expired = expire_reservations(
            now=AVAILABLE_AT + timedelta(hours=47, minutes=59, seconds=59)
        )

        assert expired == 0
        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.AVAILABLE
        assert stock_quantity(reservation.book) == 0

    def test_expired_after_window_releases_copy(
        self, make_held_reservation, stock_quantity
    ):
        reservation = make_held_reservation()
        now = AVAILABLE_AT + timedelta(hours=48, seconds=1)

        assert expire_reservations(now=now) == 1

        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.EXPIRED
        assert stock_quantity(reservation.book) == 1
        assert History.objects.filter(
            event_type="ReservationExpired", reservation=reservation
        ).exists()
        assert Notification.objects.filter(
            member=reservation.member, type=Notification.Type.RESERVATION_EXPIRED
        ).exists()

        # A second sweep right after finds nothing left to do
        assert expire_reservations(now=now) == 0
        assert stock_quantity(reservation.book) == 1

    def test_pending_reservations_are_ignored(self, member, make_member, make_book):
        book = make_book(quantity=1)
        create_loan(make_member().id, book.id)
        with freeze_time(AVAILABLE_AT):
            reservation = create_reservation(member.id, book.id)

        assert expire_reservations(now=AVAILABLE_AT + timedelta(days=30)) == 0
        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.PENDING

    def test_stops_between_reservations(self, make_held_reservation):
        make_held_reservation(title="Dune")
        make_held_reservation(title="Emma")
        answers = iter([False, True])

        expired = expire_reservations(
            now=AVAILABLE_AT + timedelta(days=3), should_stop=lambda: next(answers)
        )

        assert expired == 1
        assert Reservation.objects.filter(status=Reservation.Status.AVAILABLE).count() == 1

    def test_shorter_window_from_settings(self, settings, make_held_reservation):
        settings.CIRCULATION = {**settings.CIRCULATION, "RESERVATION_EXPIRATION_HOURS": 2}
        make_held_reservation()

        assert expire_reservations(now=AVAILABLE_AT + timedelta(hours=3)) == 1


@pytest.mark.django_db
class TestExpiryTask:
    def test_reports_expired_count(self, make_held_reservation):
        make_held_reservation()

        with freeze_time(AVAILABLE_AT + timedelta(hours=49)):
            result = expire_reservations_task.apply().get()

        assert result["status"] == "completed"
        assert result["expired_count"] == 1
        assert cache.get("sweep-lock:reservation-expiry") is None

    def test_skips_while_previous_sweep_runs(self, make_held_reservation):
        reservation = make_held_reservation()
        cache.add("sweep-lock:reservation-expiry", "locked", 60)

        with freeze_time(AVAILABLE_AT + timedelta(hours=49)):
            result = expire_reservations_task.apply().get()

        assert result["status"] == "skipped"
        reservation.refresh_from_db()
        assert reservation.status == Reservation.Status.AVAILABLE
