"""Value objects handed to the booking service by the presentation layer."""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidBookingDraft, InvalidSeatClass
from .models import SeatClass

PASSPORT_PATTERN = re.compile(r"^[A-Z0-9]{5,20}$")


@dataclass(frozen=True)
class Actor:
    """Identity of the caller as established by the auth layer."""

    user_id: int
    is_admin: bool = False


@dataclass(frozen=True)
class PassengerDetails:
    name: str
    date_of_birth: date
    passport_number: str
    nationality: str
    gender: str
    seat_class: SeatClass
    phone: str = ""

    def normalized(self) -> "PassengerDetails":
        return replace(
            self,
            name=self.name.strip(),
            phone=self.phone.strip(),
            passport_number=self.passport_number.strip().upper(),
            nationality=self.nationality.strip(),
            gender=self.gender.strip(),
        )

    def problems(self, position: int, today: date) -> List[str]:
        errors: List[str] = []
        if not (self.name and self.passport_number and self.nationality and self.gender):
            errors.append(f"All fields are required for passenger {position}.")
        if self.date_of_birth > today:
            errors.append(f"Date of birth cannot be in the future for passenger {position}.")
        if not PASSPORT_PATTERN.match(self.passport_number):
            errors.append(f"Invalid passport number format for passenger {position}.")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth.isoformat(),
            "passport_number": self.passport_number,
            "nationality": self.nationality,
            "gender": self.gender,
            "seat_class": self.seat_class.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassengerDetails":
        dob = data.get("date_of_birth")
        if isinstance(dob, str):
            try:
                dob = date.fromisoformat(dob)
            except ValueError as exc:
                raise InvalidBookingDraft([f"Invalid date of birth {dob!r}."]) from exc
        if not isinstance(dob, date):
            raise InvalidBookingDraft(["Date of birth is required."])
        return cls(
            name=str(data.get("name", "")),
            phone=str(data.get("phone", "") or ""),
            date_of_birth=dob,
            passport_number=str(data.get("passport_number", "")),
            nationality=str(data.get("nationality", "")),
            gender=str(data.get("gender", "")),
            seat_class=SeatClass.parse(data.get("seat_class")),
        )


@dataclass(frozen=True)
class BookingDraft:
    """A complete, serializable booking request for one flight.

    Passengers are booked in the order given, all or none.
    """

    flight_id: int
    passengers: Tuple[PassengerDetails, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "passengers", tuple(self.passengers))

    @property
    def ticket_count(self) -> int:
        return len(self.passengers)

    def normalized(self) -> "BookingDraft":
        return BookingDraft(self.flight_id, tuple(p.normalized() for p in self.passengers))

    def validate(self, max_tickets: int, *, today: Optional[date] = None) -> "BookingDraft":
        """Return the normalized draft or raise :class:`InvalidBookingDraft` listing every problem."""

        today = today or date.today()
        draft = self.normalized()
        errors: List[str] = []
        if not 1 <= draft.ticket_count <= max_tickets:
            errors.append(f"You can book between 1 and {max_tickets} tickets.")
        seen: set[str] = set()
        for position, passenger in enumerate(draft.passengers, start=1):
            if not isinstance(passenger.seat_class, SeatClass):
                raise InvalidSeatClass(passenger.seat_class)
            errors.extend(passenger.problems(position, today))
            if passenger.passport_number in seen:
                errors.append(f"Duplicate passport number detected for passenger {position}.")
            seen.add(passenger.passport_number)
        if errors:
            raise InvalidBookingDraft(errors)
        return draft

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flight_id": self.flight_id,
            "passengers": [passenger.to_dict() for passenger in self.passengers],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingDraft":
        try:
            flight_id = int(data["flight_id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidBookingDraft(["A valid flight_id is required."]) from exc
        passengers: Sequence[Dict[str, Any]] = data.get("passengers") or ()
        return cls(flight_id, tuple(PassengerDetails.from_dict(item) for item in passengers))


__all__ = ["Actor", "PassengerDetails", "BookingDraft", "PASSPORT_PATTERN"]
