"""The authoritative record of bookings and their status transitions."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, FrozenSet, Generic, Iterable, List, Optional, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, joinedload

from .errors import InvalidTransition, NotFound
from .models import Booking, BookingStatus, SeatClass

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return max(math.ceil(self.total / self.page_size), 1)

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def create(
    session: Session,
    *,
    user_id: int,
    flight_id: int,
    passenger_id: int,
    seat_class: SeatClass,
    seat_number: str,
    fare: Decimal,
) -> Booking:
    booking = Booking(
        user_id=user_id,
        flight_id=flight_id,
        passenger_id=passenger_id,
        seat_class=seat_class,
        seat_number=seat_number,
        fare=fare,
        status=BookingStatus.PENDING,
    )
    session.add(booking)
    session.flush()
    return booking


def get(session: Session, booking_id: int, *, for_update: bool = False) -> Booking:
    booking = session.get(Booking, booking_id, with_for_update=for_update or None)
    if booking is None:
        raise NotFound("booking", booking_id)
    return booking


def transition(session: Session, booking: Booking, new_status: BookingStatus | str) -> BookingStatus:
    """Move ``booking`` to ``new_status`` and return the status it had before.

    Releasing inventory on cancellation is the caller's job.
    """

    new_status = BookingStatus.parse(new_status)
    previous = booking.status
    if not can_transition(previous, new_status):
        raise InvalidTransition(booking.id, previous, new_status)
    booking.status = new_status
    session.flush()
    return previous


def _paginate(session: Session, stmt: Select, page: int, page_size: int) -> Page[Booking]:
    page = max(page, 1)
    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = list(
        session.scalars(
            stmt.options(joinedload(Booking.passenger), joinedload(Booking.flight))
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
    )
    return Page(items=items, page=page, page_size=page_size, total=total)


def list_by_flight(
    session: Session,
    flight_id: int,
    statuses: Optional[Iterable[BookingStatus | str]] = None,
) -> List[Booking]:
    stmt = select(Booking).where(Booking.flight_id == flight_id)
    if statuses is not None:
        stmt = stmt.where(Booking.status.in_([BookingStatus.parse(status) for status in statuses]))
    stmt = stmt.options(joinedload(Booking.passenger)).order_by(Booking.id)
    bookings = list(session.scalars(stmt))
    # Seat numbers sort numerically within a class, so "10E" follows "9E".
    return sorted(bookings, key=lambda b: (b.seat_class.value, int(b.seat_number[:-1]), b.id))


def list_by_user(session: Session, user_id: int, page: int = 1, page_size: int = 5) -> Page[Booking]:
    stmt = (
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return _paginate(session, stmt, page, page_size)


def list_by_status(
    session: Session, status: BookingStatus | str, page: int = 1, page_size: int = 5
) -> Page[Booking]:
    """Admin queues: pending bookings oldest first, everything else newest first."""

    status = BookingStatus.parse(status)
    stmt = select(Booking).where(Booking.status == status)
    if status is BookingStatus.PENDING:
        stmt = stmt.order_by(Booking.created_at.asc(), Booking.id.asc())
    else:
        stmt = stmt.order_by(Booking.created_at.desc(), Booking.id.desc())
    return _paginate(session, stmt, page, page_size)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "Page",
    "can_transition",
    "create",
    "get",
    "transition",
    "list_by_flight",
    "list_by_user",
    "list_by_status",
]
