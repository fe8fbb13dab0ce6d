from datetime import date
from decimal import Decimal

import pytest

from flight_booking import ledger
from flight_booking.database import session_scope
from flight_booking.errors import InvalidTransition, NotFound
from flight_booking.models import BookingStatus, Passenger, SeatClass


def _passenger(session, passport):
    passenger = Passenger(
        name="Ledger Test",
        date_of_birth=date(1985, 1, 1),
        passport_number=passport,
        nationality="CA",
        gender="Male",
    )
    session.add(passenger)
    session.flush()
    return passenger


def _create(session, flight_id, passport, seat_number, seat_class=SeatClass.ECONOMY, user_id=1):
    return ledger.create(
        session,
        user_id=user_id,
        flight_id=flight_id,
        passenger_id=_passenger(session, passport).id,
        seat_class=seat_class,
        seat_number=seat_number,
        fare=Decimal("100.00"),
    )


def test_transition_table():
    assert ledger.can_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert ledger.can_transition(BookingStatus.PENDING, BookingStatus.CANCELLED)
    assert ledger.can_transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED)
    assert not ledger.can_transition(BookingStatus.CONFIRMED, BookingStatus.PENDING)
    assert not any(ledger.can_transition(BookingStatus.CANCELLED, status) for status in BookingStatus)


def test_create_and_transition(session_factory, make_flight):
    flight_id = make_flight()

    with session_scope(session_factory) as session:
        booking = _create(session, flight_id, "LEDGER01", "1E")
        assert booking.status is BookingStatus.PENDING
        assert ledger.transition(session, booking, "Confirmed") is BookingStatus.PENDING
        with pytest.raises(InvalidTransition) as excinfo:
            ledger.transition(session, booking, BookingStatus.PENDING)
        assert excinfo.value.current is BookingStatus.CONFIRMED
        booking_id = booking.id

    with session_scope(session_factory) as session:
        assert ledger.get(session, booking_id).status is BookingStatus.CONFIRMED
        with pytest.raises(NotFound):
            ledger.get(session, booking_id + 1)


def test_list_by_flight_orders_by_class_then_seat(session_factory, make_flight):
    flight_id = make_flight(economy=12, business=2)

    with session_scope(session_factory) as session:
        _create(session, flight_id, "LEDGER10", "10E")
        _create(session, flight_id, "LEDGER02", "2E")
        _create(session, flight_id, "LEDGER03", "1B", SeatClass.BUSINESS)
        cancelled = _create(session, flight_id, "LEDGER04", "1E")
        ledger.transition(session, cancelled, BookingStatus.CANCELLED)

    with session_scope(session_factory) as session:
        everything = ledger.list_by_flight(session, flight_id)
        active = ledger.list_by_flight(session, flight_id, [BookingStatus.PENDING, BookingStatus.CONFIRMED])

    assert [b.seat_number for b in everything] == ["1B", "1E", "2E", "10E"]
    assert [b.seat_number for b in active] == ["1B", "2E", "10E"]


def test_pages(session_factory, make_flight):
    flight_id = make_flight(economy=7)

    with session_scope(session_factory) as session:
        for number in range(1, 8):
            _create(session, flight_id, f"PAGE{number:04d}", f"{number}E", user_id=3)

    with session_scope(session_factory) as session:
        first = ledger.list_by_user(session, 3, page=1, page_size=3)
        last = ledger.list_by_user(session, 3, page=3, page_size=3)
        beyond = ledger.list_by_user(session, 3, page=9, page_size=3)
        empty = ledger.list_by_user(session, 42)

    assert (first.total, first.pages, first.has_next) == (7, 3, True)
    assert [b.seat_number for b in first.items] == ["7E", "6E", "5E"]
    assert [b.seat_number for b in last.items] == ["1E"]
    assert not last.has_next
    assert beyond.items == []
    assert empty.pages == 1
    assert empty.total == 0
