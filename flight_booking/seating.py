"""Deterministic seat numbering."""
from __future__ import annotations

import logging
import re
from typing import AbstractSet, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NoSeatAvailable
from .models import ACTIVE_STATUSES, Booking, Flight, SeatClass

logger = logging.getLogger(__name__)

_SEAT_PATTERN = re.compile(r"^([1-9][0-9]*)([A-Z])$")


def format_seat_number(number: int, class_letter: str) -> str:
    return f"{number}{class_letter}"


def parse_seat_number(seat_number: str) -> Tuple[int, str]:
    """Split ``"12E"`` into ``(12, "E")``."""

    match = _SEAT_PATTERN.match(seat_number.strip())
    if not match:
        raise ValueError(f"malformed seat number {seat_number!r}")
    return int(match.group(1)), match.group(2)


class SeatAssigner:
    """Seat allocation helper that always hands out the lowest free number."""

    @staticmethod
    def assign(
        existing_numbers: AbstractSet[int],
        class_letter: str,
        capacity: int,
        *,
        flight_id: Optional[int] = None,
        seat_class: Optional[SeatClass] = None,
    ) -> str:
        for candidate in range(1, capacity + 1):
            if candidate not in existing_numbers:
                return format_seat_number(candidate, class_letter)
        raise NoSeatAvailable(flight_id, seat_class or class_letter)

    @classmethod
    def active_seat_numbers(cls, session: Session, flight_id: int, seat_class: SeatClass) -> Set[int]:
        """Numbers held by Pending or Confirmed bookings, read in the caller's transaction."""

        seats = session.scalars(
            select(Booking.seat_number).where(
                Booking.flight_id == flight_id,
                Booking.seat_class == seat_class,
                Booking.status.in_(ACTIVE_STATUSES),
            )
        )
        return {parse_seat_number(seat)[0] for seat in seats}

    @classmethod
    def next_seat(cls, session: Session, flight: Flight, seat_class: SeatClass) -> str:
        existing = cls.active_seat_numbers(session, flight.id, seat_class)
        seat = cls.assign(
            existing,
            seat_class.letter,
            flight.capacity(seat_class),
            flight_id=flight.id,
            seat_class=seat_class,
        )
        logger.debug("assigned seat %s on flight %s (%d held)", seat, flight.id, len(existing))
        return seat


__all__ = ["SeatAssigner", "format_seat_number", "parse_seat_number"]
