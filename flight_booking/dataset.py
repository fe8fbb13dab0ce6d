"""Utilities to populate the database with sample data for tests and demos."""
from __future__ import annotations

import random
from datetime import date, datetime, timedelta
from typing import Dict, List, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from .commands import Actor, BookingDraft, PassengerDetails
from .config import Settings
from .database import session_scope
from .errors import BookingError
from .models import Passenger, SeatClass
from .reference import add_aircraft, add_route, schedule_flight
from .services import BookingService

AIRPORTS: Sequence[str] = (
    "ATL",
    "PEK",
    "DXB",
    "LAX",
    "HND",
    "ORD",
    "LHR",
    "HKG",
    "PVG",
    "CDG",
)
# model, economy, business, first class
AIRCRAFT: Sequence[Tuple[str, int, int, int]] = (
    ("A320", 150, 24, 0),
    ("A350", 250, 40, 8),
    ("B737", 160, 12, 0),
    ("B787", 210, 28, 6),
)
FIRST_NAMES = ("Ava", "Noah", "Liam", "Mia", "Lucas", "Emma", "Ethan", "Isabella")
LAST_NAMES = ("Johnson", "Williams", "Smith", "Brown", "Garcia", "Lee")
NATIONALITIES = ("US", "GB", "FR", "JP", "CN", "AE")
SEAT_CLASS_WEIGHTS = (
    (SeatClass.ECONOMY, 8),
    (SeatClass.BUSINESS, 2),
    (SeatClass.FIRST_CLASS, 1),
)


def _random_datetime(days_from_now: int) -> datetime:
    start = datetime.now() + timedelta(days=days_from_now)
    hour = random.randint(5, 22)
    minute = random.choice((0, 15, 30, 45))
    return start.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _random_passenger(index: int) -> PassengerDetails:
    classes, weights = zip(*SEAT_CLASS_WEIGHTS)
    return PassengerDetails(
        name=f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        phone=f"+1-555-{index:04d}",
        date_of_birth=date(1950, 1, 1) + timedelta(days=random.randint(0, 20000)),
        passport_number=f"P{index:07d}",
        nationality=random.choice(NATIONALITIES),
        gender=random.choice(("Male", "Female")),
        seat_class=random.choices(classes, weights)[0],
    )


def generate_sample_data(
    session_factory: sessionmaker[Session],
    *,
    flights: int = 25,
    passengers: int = 200,
    bookings: int = 100,
    users: int = 40,
    settings: Settings | None = None,
) -> Dict[str, int]:
    """Populate the database with deterministic pseudo-random data.

    Bookings go through :class:`BookingService`, so rejected requests (sold
    out classes, duplicate passports, per-user caps) are simply skipped.
    """

    random.seed(42)
    with session_scope(session_factory) as session:
        aircraft_ids = [
            add_aircraft(
                session,
                model=model,
                seat_economy=economy,
                seat_business=business,
                seat_first_class=first,
            ).id
            for model, economy, business, first in AIRCRAFT
        ]
        flight_ids: List[int] = []
        for index in range(flights):
            origin, destination = random.sample(AIRPORTS, 2)
            economy = random.choice((120, 180, 240))
            route = add_route(
                session,
                origin=origin,
                destination=destination,
                price_economy=economy,
                price_business=economy * 3,
                price_first_class=economy * 6,
            )
            departure = _random_datetime(random.randint(1, 10))
            flight = schedule_flight(
                session,
                flight_number=f"AR{1000 + index}",
                route_id=route.id,
                aircraft_id=random.choice(aircraft_ids),
                departure_time=departure,
                arrival_time=departure + timedelta(hours=random.randint(2, 12)),
            )
            flight_ids.append(flight.id)

    if not flight_ids or passengers <= 0:
        return {"flights": len(flight_ids), "passengers": 0, "bookings": 0}

    service = BookingService(session_factory, settings)
    people = [_random_passenger(index) for index in range(passengers)]
    successful = 0
    for _ in range(bookings):
        group = random.sample(people, random.randint(1, min(3, len(people))))
        draft = BookingDraft(random.choice(flight_ids), tuple(group))
        actor = Actor(user_id=random.randint(1, max(users, 1)))
        try:
            successful += len(service.create_bookings(draft, actor).bookings)
        except BookingError:
            continue
    with session_scope(session_factory) as session:
        stored = session.scalar(select(func.count(Passenger.id))) or 0
    return {"flights": len(flight_ids), "passengers": stored, "bookings": successful}


__all__ = ["generate_sample_data"]
