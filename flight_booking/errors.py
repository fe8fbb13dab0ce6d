"""Typed errors raised by the booking engine.

Every error aborts the enclosing transaction and propagates to the caller,
which decides how to present it.
"""
from __future__ import annotations

from typing import Iterable, List, Optional


class BookingError(RuntimeError):
    """Base class for all booking engine failures."""


class NotFound(BookingError):
    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier!r} not found")


class InsufficientInventory(BookingError):
    """Raised when the class counter cannot cover the requested seats."""

    def __init__(self, flight_id: int, seat_class: object) -> None:
        self.flight_id = flight_id
        self.seat_class = seat_class
        super().__init__(f"no seats available in {_label(seat_class)} class on flight {flight_id}")


class NoSeatAvailable(BookingError):
    """Raised when every seat number up to the class capacity is held.

    The counter said a seat was free, so this signals inconsistent inventory.
    """

    def __init__(self, flight_id: Optional[int], seat_class: object) -> None:
        self.flight_id = flight_id
        self.seat_class = seat_class
        super().__init__(f"no seat numbers left in {_label(seat_class)} class on flight {flight_id}")


class DuplicatePassenger(BookingError):
    def __init__(self, flight_id: int, passport_number: str) -> None:
        self.flight_id = flight_id
        self.passport_number = passport_number
        super().__init__(
            f"passenger with passport number {passport_number} has already booked flight {flight_id}"
        )


class BookingCapExceeded(BookingError):
    def __init__(self, flight_id: int, user_id: int, cap: int, remaining: int) -> None:
        self.flight_id = flight_id
        self.user_id = user_id
        self.cap = cap
        self.remaining = remaining
        if remaining <= 0:
            message = f"user {user_id} already holds the maximum of {cap} tickets on flight {flight_id}"
        else:
            message = f"user {user_id} can only book {remaining} more ticket(s) on flight {flight_id}"
        super().__init__(message)


class InvalidTransition(BookingError):
    def __init__(self, booking_id: int, current: object, requested: object) -> None:
        self.booking_id = booking_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"booking {booking_id} cannot move from {_label(current)} to {_label(requested)}"
        )


class InvalidSeatClass(BookingError, ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid seat class {value!r}")


class InvalidStatus(BookingError, ValueError):
    def __init__(self, kind: str, value: object) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"invalid {kind} status {value!r}")


class InvalidBookingDraft(BookingError, ValueError):
    """Collects every validation problem found in a draft booking."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "invalid booking draft")


class FlightNotBookable(BookingError):
    def __init__(self, flight_id: int, status: object) -> None:
        self.flight_id = flight_id
        self.status = status
        super().__init__(f"flight {flight_id} is {_label(status)} and not open for booking")


class InvalidFlightTransition(BookingError):
    def __init__(self, flight_id: int, current: object, requested: object) -> None:
        self.flight_id = flight_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"flight {flight_id} cannot move from {_label(current)} to {_label(requested)}"
        )


class PermissionDenied(BookingError):
    def __init__(self, user_id: Optional[int], operation: str) -> None:
        self.user_id = user_id
        self.operation = operation
        super().__init__(f"user {user_id} is not allowed to {operation}")


def _label(value: object) -> str:
    return str(getattr(value, "value", value))


__all__ = [
    "BookingError",
    "NotFound",
    "InsufficientInventory",
    "NoSeatAvailable",
    "DuplicatePassenger",
    "BookingCapExceeded",
    "InvalidTransition",
    "InvalidSeatClass",
    "InvalidStatus",
    "InvalidBookingDraft",
    "FlightNotBookable",
    "InvalidFlightTransition",
    "PermissionDenied",
]
