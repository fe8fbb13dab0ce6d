"""Checks that keep a passenger or account from over-booking a flight."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import BookingCapExceeded, DuplicatePassenger
from .models import ACTIVE_STATUSES, Booking, Passenger

logger = logging.getLogger(__name__)


def normalize_passport(passport_number: str) -> str:
    return passport_number.strip().upper()


def ensure_no_active_booking(session: Session, flight_id: int, passport_number: str) -> None:
    """Raise :class:`DuplicatePassenger` if the passport already holds an active booking."""

    passport = normalize_passport(passport_number)
    existing = session.scalar(
        select(Booking.id)
        .join(Passenger, Booking.passenger_id == Passenger.id)
        .where(
            Booking.flight_id == flight_id,
            Passenger.passport_number == passport,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .limit(1)
    )
    if existing is not None:
        logger.warning("passport %s already holds booking %s on flight %s", passport, existing, flight_id)
        raise DuplicatePassenger(flight_id, passport)


def active_booking_count(session: Session, flight_id: int, user_id: int) -> int:
    return session.scalar(
        select(func.count(Booking.id)).where(
            Booking.flight_id == flight_id,
            Booking.user_id == user_id,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    ) or 0


def ensure_within_cap(session: Session, flight_id: int, user_id: int, requested: int, cap: int) -> int:
    """Check ``existing + requested <= cap`` and return how many tickets remain afterwards."""

    existing = active_booking_count(session, flight_id, user_id)
    remaining = max(cap - existing, 0)
    if requested > remaining:
        logger.warning(
            "user %s requested %d ticket(s) on flight %s with %d remaining", user_id, requested, flight_id, remaining
        )
        raise BookingCapExceeded(flight_id, user_id, cap, remaining)
    return remaining - requested


__all__ = ["normalize_passport", "ensure_no_active_booking", "active_booking_count", "ensure_within_cap"]
