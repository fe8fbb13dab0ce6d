from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta

import pytest

from flight_booking.commands import Actor, BookingDraft, PassengerDetails
from flight_booking.config import Settings
from flight_booking.database import create_session_factory, init_db, session_scope
from flight_booking.models import Base, SeatClass
from flight_booking.reference import add_aircraft, add_route, schedule_flight
from flight_booking.services import BookingService

_flight_numbers = itertools.count(100)


def _passenger_details(
    passport: str, seat_class: SeatClass = SeatClass.ECONOMY, name: str = "Test Traveler"
) -> PassengerDetails:
    return PassengerDetails(
        name=name,
        phone="+1-555-0000",
        date_of_birth=date(1990, 5, 17),
        passport_number=passport,
        nationality="US",
        gender="Female",
        seat_class=seat_class,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=999, is_admin=True)


@pytest.fixture
def passenger():
    """Builder for valid passenger details: ``passenger(passport, seat_class=...)``."""

    return _passenger_details


@pytest.fixture
def session_factory(tmp_path, settings):
    engine, factory = create_session_factory(
        f"sqlite+pysqlite:///{tmp_path / 'booking-test.db'}", settings=settings
    )
    Base.metadata.create_all(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def memory_session_factory(settings):
    factory = init_db("sqlite+pysqlite:///:memory:", settings=settings)
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def service(session_factory, settings) -> BookingService:
    return BookingService(session_factory, settings)


@pytest.fixture
def make_flight(session_factory):
    def _make(
        economy: int = 5,
        business: int = 2,
        first_class: int = 1,
        prices=(100, 300, 600),
        factory=None,
    ) -> int:
        departure = datetime(2030, 1, 1, 8, 0)
        with session_scope(factory or session_factory) as session:
            aircraft = add_aircraft(
                session,
                model="A320",
                seat_economy=economy,
                seat_business=business,
                seat_first_class=first_class,
            )
            route = add_route(
                session,
                origin="LAX",
                destination="JFK",
                price_economy=prices[0],
                price_business=prices[1],
                price_first_class=prices[2],
            )
            flight = schedule_flight(
                session,
                flight_number=f"AR{next(_flight_numbers)}",
                route_id=route.id,
                aircraft_id=aircraft.id,
                departure_time=departure,
                arrival_time=departure + timedelta(hours=5),
            )
            return flight.id

    return _make


@pytest.fixture
def book(service):
    """Book ``passports`` (economy unless given as (passport, class) pairs) for ``user_id``."""

    def _book(flight_id: int, *passports, user_id: int = 1):
        details = [
            _passenger_details(*item) if isinstance(item, tuple) else _passenger_details(item)
            for item in passports
        ]
        return service.create_bookings(BookingDraft(flight_id, tuple(details)), Actor(user_id=user_id))

    return _book
