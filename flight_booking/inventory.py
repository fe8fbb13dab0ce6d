"""Per-flight, per-class available seat counters."""
from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .errors import InsufficientInventory, NotFound
from .models import SEAT_COUNTERS, Flight, SeatClass

logger = logging.getLogger(__name__)


def _check_count(count: int) -> None:
    if count < 1:
        raise ValueError("seat count must be positive")


def _expire_counter(session: Session, flight_id: int, seat_class: SeatClass) -> None:
    """Drop the cached counter of an already loaded flight so the next read hits the database."""

    cached = session.identity_map.get(session.identity_key(Flight, flight_id))
    if cached is not None:
        session.expire(cached, [SEAT_COUNTERS[seat_class].key])


def try_reserve(session: Session, flight_id: int, seat_class: SeatClass | str, count: int = 1) -> None:
    """Atomically take ``count`` seats of ``seat_class`` from the flight's counter.

    The decrement is a single conditional UPDATE, so two transactions can
    never both observe the last seat as free. Nothing changes on failure.
    """

    _check_count(count)
    seat_class = SeatClass.parse(seat_class)
    counter = SEAT_COUNTERS[seat_class]
    result = session.execute(
        update(Flight)
        .where(Flight.id == flight_id, counter >= count)
        .values({counter: counter - count})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        _expire_counter(session, flight_id, seat_class)
        logger.debug("reserved %d %s seat(s) on flight %s", count, seat_class.value, flight_id)
        return
    if session.get(Flight, flight_id) is None:
        raise NotFound("flight", flight_id)
    raise InsufficientInventory(flight_id, seat_class)


def release(session: Session, flight_id: int, seat_class: SeatClass | str, count: int = 1) -> None:
    """Give ``count`` seats of ``seat_class`` back to the flight's counter."""

    _check_count(count)
    seat_class = SeatClass.parse(seat_class)
    counter = SEAT_COUNTERS[seat_class]
    result = session.execute(
        update(Flight)
        .where(Flight.id == flight_id)
        .values({counter: counter + count})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound("flight", flight_id)
    _expire_counter(session, flight_id, seat_class)
    logger.debug("released %d %s seat(s) on flight %s", count, seat_class.value, flight_id)


def available_seats(session: Session, flight_id: int) -> Dict[SeatClass, int]:
    """Return the current counters for every seat class of a flight."""

    classes = list(SEAT_COUNTERS)
    row = session.execute(
        select(*(SEAT_COUNTERS[seat_class] for seat_class in classes)).where(Flight.id == flight_id)
    ).first()
    if row is None:
        raise NotFound("flight", flight_id)
    return {seat_class: int(value) for seat_class, value in zip(classes, row)}


__all__ = ["try_reserve", "release", "available_seats"]
