"""Business logic for the flight booking engine.

Each public operation of :class:`BookingService` is a single transaction with
one commit point. Any error raised inside rolls back every write the operation
made, then propagates unchanged to the caller.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from . import guards, inventory, ledger, reference
from .commands import Actor, BookingDraft, PassengerDetails
from .config import Settings, load_settings
from .database import session_scope
from .errors import (
    BookingError,
    DuplicatePassenger,
    FlightNotBookable,
    InvalidFlightTransition,
    NoSeatAvailable,
    NotFound,
    PermissionDenied,
)
from .models import ACTIVE_STATUSES, Booking, BookingStatus, Flight, FlightStatus, Passenger, SeatClass
from .seating import SeatAssigner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingView:
    """Detached snapshot of a booking, safe to use after the session closes."""

    id: int
    user_id: int
    flight_id: int
    flight_number: str
    passenger_name: str
    passport_number: str
    seat_class: SeatClass
    seat_number: str
    fare: Decimal
    status: BookingStatus
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingView":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            flight_id=booking.flight_id,
            flight_number=booking.flight.flight_number,
            passenger_name=booking.passenger.name,
            passport_number=booking.passenger.passport_number,
            seat_class=booking.seat_class,
            seat_number=booking.seat_number,
            fare=booking.fare,
            status=booking.status,
            created_at=booking.created_at,
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flight_id": self.flight_id,
            "flight_number": self.flight_number,
            "passenger_name": self.passenger_name,
            "passport_number": self.passport_number,
            "seat_class": self.seat_class.value,
            "seat_number": self.seat_number,
            "fare": str(self.fare),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class BookingConfirmation:
    flight_id: int
    flight_number: str
    bookings: List[BookingView] = field(default_factory=list)

    @property
    def total_fare(self) -> Decimal:
        return sum((booking.fare for booking in self.bookings), Decimal("0"))

    def as_dict(self) -> Dict[str, object]:
        return {
            "flight_id": self.flight_id,
            "flight_number": self.flight_number,
            "bookings": [booking.as_dict() for booking in self.bookings],
            "total_fare": str(self.total_fare),
        }


def _require_admin(actor: Actor, operation: str) -> None:
    if not actor.is_admin:
        logger.warning("user %s denied: %s", actor.user_id, operation)
        raise PermissionDenied(actor.user_id, operation)


def _resolve_passenger(session: Session, details: PassengerDetails) -> Passenger:
    """Return the passenger holding ``details.passport_number``, creating it on first use."""

    lookup = select(Passenger).where(Passenger.passport_number == details.passport_number)
    passenger = session.scalar(lookup)
    if passenger is not None:
        return passenger
    passenger = Passenger(
        name=details.name,
        phone=details.phone,
        date_of_birth=details.date_of_birth,
        passport_number=details.passport_number,
        nationality=details.nationality,
        gender=details.gender,
    )
    try:
        with session.begin_nested():
            session.add(passenger)
    except IntegrityError:
        # Another transaction registered the same passport first.
        passenger = session.scalar(lookup)
        if passenger is None:
            raise
    return passenger


def _insert_booking(
    session: Session,
    *,
    actor: Actor,
    flight: Flight,
    passenger: Passenger,
    seat_class: SeatClass,
    seat_number: str,
    fare: Decimal,
) -> Booking:
    try:
        with session.begin_nested():
            return ledger.create(
                session,
                user_id=actor.user_id,
                flight_id=flight.id,
                passenger_id=passenger.id,
                seat_class=seat_class,
                seat_number=seat_number,
                fare=fare,
            )
    except IntegrityError as exc:
        # The partial unique indexes caught a concurrent writer.
        seat_taken = session.scalar(
            select(Booking.id).where(
                Booking.flight_id == flight.id,
                Booking.seat_class == seat_class,
                Booking.seat_number == seat_number,
                Booking.status.in_(ACTIVE_STATUSES),
            )
        )
        if seat_taken is not None:
            raise NoSeatAvailable(flight.id, seat_class) from exc
        raise DuplicatePassenger(flight.id, passenger.passport_number) from exc


class BookingService:
    """Orchestrates reservations, status changes and flight cancellations."""

    def __init__(self, session_factory: sessionmaker[Session], settings: Optional[Settings] = None) -> None:
        self.session_factory = session_factory
        self.settings = settings or load_settings()

    def create_bookings(self, draft: BookingDraft, actor: Actor) -> BookingConfirmation:
        """Book every passenger in ``draft`` or none of them."""

        try:
            draft = draft.validate(self.settings.max_tickets_per_user)
            with session_scope(self.session_factory) as session:
                flight = reference.get_flight(session, draft.flight_id, for_update=True)
                if not flight.is_bookable:
                    raise FlightNotBookable(flight.id, flight.status)
                guards.ensure_within_cap(
                    session,
                    flight.id,
                    actor.user_id,
                    draft.ticket_count,
                    self.settings.max_tickets_per_user,
                )
                confirmation = BookingConfirmation(flight.id, flight.flight_number)
                for details in draft.passengers:
                    guards.ensure_no_active_booking(session, flight.id, details.passport_number)
                    passenger = _resolve_passenger(session, details)
                    inventory.try_reserve(session, flight.id, details.seat_class)
                    seat_number = SeatAssigner.next_seat(session, flight, details.seat_class)
                    booking = _insert_booking(
                        session,
                        actor=actor,
                        flight=flight,
                        passenger=passenger,
                        seat_class=details.seat_class,
                        seat_number=seat_number,
                        fare=flight.route.price(details.seat_class),
                    )
                    confirmation.bookings.append(BookingView.from_booking(booking))
        except BookingError as exc:
            logger.warning("booking for user %s on flight %s rejected: %s", actor.user_id, draft.flight_id, exc)
            raise
        logger.info(
            "user %s booked %d seat(s) on flight %s: %s",
            actor.user_id,
            len(confirmation.bookings),
            confirmation.flight_number,
            ", ".join(booking.seat_number for booking in confirmation.bookings),
        )
        return confirmation

    def _apply_transition(self, session: Session, booking: Booking, new_status: BookingStatus) -> None:
        ledger.transition(session, booking, new_status)
        if new_status is BookingStatus.CANCELLED:
            inventory.release(session, booking.flight_id, booking.seat_class)

    def change_status(self, booking_id: int, new_status: BookingStatus | str, actor: Actor) -> BookingView:
        """Admin confirmation or cancellation of a booking."""

        _require_admin(actor, "change booking status")
        new_status = BookingStatus.parse(new_status)
        try:
            with session_scope(self.session_factory) as session:
                booking = ledger.get(session, booking_id, for_update=True)
                self._apply_transition(session, booking, new_status)
                view = BookingView.from_booking(booking)
        except BookingError as exc:
            logger.warning("status change of booking %s to %s rejected: %s", booking_id, new_status.value, exc)
            raise
        logger.info("booking %s is now %s", booking_id, new_status.value)
        return view

    def cancel_booking(self, booking_id: int, actor: Actor) -> BookingView:
        """Cancellation requested by the booking's owner (or an admin)."""

        try:
            with session_scope(self.session_factory) as session:
                booking = ledger.get(session, booking_id, for_update=True)
                if booking.user_id != actor.user_id and not actor.is_admin:
                    raise NotFound("booking", booking_id)
                self._apply_transition(session, booking, BookingStatus.CANCELLED)
                view = BookingView.from_booking(booking)
        except BookingError as exc:
            logger.warning("cancellation of booking %s by user %s rejected: %s", booking_id, actor.user_id, exc)
            raise
        logger.info("booking %s cancelled by user %s", booking_id, actor.user_id)
        return view

    def _cascade_cancel(self, session: Session, flight: Flight) -> int:
        flight.status = FlightStatus.CANCELLED
        bookings = ledger.list_by_flight(session, flight.id, ACTIVE_STATUSES)
        released: Counter[SeatClass] = Counter()
        for booking in bookings:
            ledger.transition(session, booking, BookingStatus.CANCELLED)
            released[booking.seat_class] += 1
        for seat_class, count in released.items():
            inventory.release(session, flight.id, seat_class, count)
        return len(bookings)

    def cancel_flight(self, flight_id: int, actor: Actor) -> int:
        """Cancel a flight and every active booking on it; returns how many bookings were cancelled.

        Running it again on a cancelled flight finds no active bookings and
        releases nothing.
        """

        _require_admin(actor, "cancel flights")
        with session_scope(self.session_factory) as session:
            flight = reference.get_flight(session, flight_id, for_update=True)
            cancelled = self._cascade_cancel(session, flight)
        logger.info("flight %s cancelled, %d booking(s) cancelled", flight_id, cancelled)
        return cancelled

    def update_flight_status(self, flight_id: int, new_status: FlightStatus | str, actor: Actor) -> int:
        """Admin flight status edit. Returns the number of bookings cancelled as a side effect."""

        _require_admin(actor, "update flight status")
        new_status = FlightStatus.parse(new_status)
        with session_scope(self.session_factory) as session:
            flight = reference.get_flight(session, flight_id, for_update=True)
            if flight.status is FlightStatus.CANCELLED and new_status is not FlightStatus.CANCELLED:
                raise InvalidFlightTransition(flight.id, flight.status, new_status)
            if new_status is FlightStatus.CANCELLED:
                cancelled = self._cascade_cancel(session, flight)
            else:
                flight.status = new_status
                cancelled = 0
        logger.info("flight %s set to %s", flight_id, new_status.value)
        return cancelled

    def get_booking(self, booking_id: int, actor: Actor) -> BookingView:
        with session_scope(self.session_factory) as session:
            booking = ledger.get(session, booking_id)
            if booking.user_id != actor.user_id and not actor.is_admin:
                raise NotFound("booking", booking_id)
            return BookingView.from_booking(booking)

    def list_user_bookings(self, actor: Actor, page: int = 1) -> ledger.Page[BookingView]:
        with session_scope(self.session_factory) as session:
            result = ledger.list_by_user(session, actor.user_id, page, self.settings.page_size)
            return ledger.Page(
                items=[BookingView.from_booking(booking) for booking in result.items],
                page=result.page,
                page_size=result.page_size,
                total=result.total,
            )

    def list_bookings_by_status(
        self, status: BookingStatus | str, actor: Actor, page: int = 1
    ) -> ledger.Page[BookingView]:
        _require_admin(actor, "list bookings by status")
        with session_scope(self.session_factory) as session:
            result = ledger.list_by_status(session, status, page, self.settings.page_size)
            return ledger.Page(
                items=[BookingView.from_booking(booking) for booking in result.items],
                page=result.page,
                page_size=result.page_size,
                total=result.total,
            )

    def list_flight_bookings(
        self,
        flight_id: int,
        actor: Actor,
        statuses: Optional[Iterable[BookingStatus | str]] = None,
    ) -> List[BookingView]:
        _require_admin(actor, "list flight bookings")
        with session_scope(self.session_factory) as session:
            reference.get_flight(session, flight_id)
            return [BookingView.from_booking(b) for b in ledger.list_by_flight(session, flight_id, statuses)]

    def flight_inventory(self, flight_id: int) -> Dict[SeatClass, int]:
        with session_scope(self.session_factory) as session:
            return inventory.available_seats(session, flight_id)


__all__ = ["BookingService", "BookingView", "BookingConfirmation"]
