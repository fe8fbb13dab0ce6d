"""Reference data the booking engine reads: aircraft, routes and scheduled flights."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from .errors import NotFound
from .models import (
    ACTIVE_STATUSES,
    BOOKABLE_FLIGHT_STATUSES,
    SEAT_COUNTERS,
    Aircraft,
    Booking,
    Flight,
    FlightStatus,
    Route,
    SeatClass,
)


def add_aircraft(
    session: Session,
    *,
    model: str,
    seat_economy: int,
    seat_business: int = 0,
    seat_first_class: int = 0,
) -> Aircraft:
    if min(seat_economy, seat_business, seat_first_class) < 0:
        raise ValueError("seat counts cannot be negative")
    aircraft = Aircraft(
        model=model,
        seat_economy=seat_economy,
        seat_business=seat_business,
        seat_first_class=seat_first_class,
    )
    session.add(aircraft)
    session.flush()
    return aircraft


def add_route(
    session: Session,
    *,
    origin: str,
    destination: str,
    price_economy: Decimal | float | str,
    price_business: Decimal | float | str,
    price_first_class: Decimal | float | str,
) -> Route:
    if origin.upper() == destination.upper():
        raise ValueError("origin and destination must differ")
    route = Route(
        origin=origin.upper(),
        destination=destination.upper(),
        price_economy=Decimal(str(price_economy)),
        price_business=Decimal(str(price_business)),
        price_first_class=Decimal(str(price_first_class)),
    )
    session.add(route)
    session.flush()
    return route


def schedule_flight(
    session: Session,
    *,
    flight_number: str,
    route_id: int,
    aircraft_id: int,
    departure_time: datetime,
    arrival_time: datetime,
) -> Flight:
    """Create a flight whose counters start at the aircraft's class capacities."""

    if arrival_time <= departure_time:
        raise ValueError("arrival must be after departure")
    aircraft = session.get(Aircraft, aircraft_id)
    if aircraft is None:
        raise NotFound("aircraft", aircraft_id)
    if session.get(Route, route_id) is None:
        raise NotFound("route", route_id)
    flight = Flight(
        flight_number=flight_number.upper(),
        route_id=route_id,
        aircraft_id=aircraft_id,
        departure_time=departure_time,
        arrival_time=arrival_time,
        status=FlightStatus.SCHEDULED,
        seat_economy=aircraft.seat_economy,
        seat_business=aircraft.seat_business,
        seat_first_class=aircraft.seat_first_class,
        capacity_economy=aircraft.seat_economy,
        capacity_business=aircraft.seat_business,
        capacity_first_class=aircraft.seat_first_class,
    )
    session.add(flight)
    session.flush()
    return flight


def get_flight(session: Session, flight_id: int, *, for_update: bool = False) -> Flight:
    flight = session.get(Flight, flight_id, with_for_update=for_update or None)
    if flight is None:
        raise NotFound("flight", flight_id)
    return flight


def list_bookable_flights(session: Session) -> List[Flight]:
    """Scheduled or delayed flights with at least one free seat in any class."""

    stmt = (
        select(Flight)
        .where(
            Flight.status.in_(BOOKABLE_FLIGHT_STATUSES),
            or_(*(counter > 0 for counter in SEAT_COUNTERS.values())),
        )
        .options(joinedload(Flight.route))
        .order_by(Flight.departure_time)
    )
    return list(session.scalars(stmt))


def summarize_inventory(session: Session) -> List[dict]:
    active = (
        select(Booking.flight_id, func.count(Booking.id).label("active"))
        .where(Booking.status.in_(ACTIVE_STATUSES))
        .group_by(Booking.flight_id)
        .subquery()
    )
    rows = session.execute(
        select(Flight, func.coalesce(active.c.active, 0))
        .outerjoin(active, active.c.flight_id == Flight.id)
        .options(joinedload(Flight.route))
        .order_by(Flight.flight_number)
    ).all()
    summary = []
    for flight, active_count in rows:
        entry = {
            "flight": flight.flight_number,
            "route": f"{flight.route.origin}-{flight.route.destination}",
            "status": flight.status.value,
            "bookings": int(active_count),
        }
        for seat_class in SeatClass:
            entry[seat_class.value] = f"{flight.available(seat_class)}/{flight.capacity(seat_class)}"
        summary.append(entry)
    return summary


__all__ = [
    "add_aircraft",
    "add_route",
    "schedule_flight",
    "get_flight",
    "list_bookable_flights",
    "summarize_inventory",
]
