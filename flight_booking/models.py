"""SQLAlchemy models for the flight booking engine."""
from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .errors import InvalidSeatClass, InvalidStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SeatClass(str, enum.Enum):
    ECONOMY = "Economy"
    BUSINESS = "Business"
    FIRST_CLASS = "First Class"

    @property
    def letter(self) -> str:
        return SEAT_LETTERS[self]

    @classmethod
    def parse(cls, value: object) -> "SeatClass":
        """Accept a member, its label or its name, case-insensitively."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().casefold()
            for member in cls:
                if wanted in (member.value.casefold(), member.name.casefold()):
                    return member
        raise InvalidSeatClass(value)


def _parse_status(enum_cls, value: object, kind: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        wanted = value.strip().casefold()
        for member in enum_cls:
            if wanted in (member.value.casefold(), member.name.casefold()):
                return member
    raise InvalidStatus(kind, value)


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: object) -> "BookingStatus":
        return _parse_status(cls, value, "booking")


class FlightStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, value: object) -> "FlightStatus":
        return _parse_status(cls, value, "flight")


SEAT_LETTERS: Dict[SeatClass, str] = {
    SeatClass.ECONOMY: "E",
    SeatClass.BUSINESS: "B",
    SeatClass.FIRST_CLASS: "F",
}
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
BOOKABLE_FLIGHT_STATUSES = (FlightStatus.SCHEDULED, FlightStatus.DELAYED)


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    pass


class Aircraft(Base):
    __tablename__ = "aircraft"
    __table_args__ = (
        CheckConstraint("seat_economy >= 0", name="ck_aircraft_economy_non_negative"),
        CheckConstraint("seat_business >= 0", name="ck_aircraft_business_non_negative"),
        CheckConstraint("seat_first_class >= 0", name="ck_aircraft_first_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    model: Mapped[str] = mapped_column(String(50), nullable=False)
    seat_economy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seat_business: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seat_first_class: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def seats(self, seat_class: SeatClass) -> int:
        return getattr(self, AIRCRAFT_SEATS[seat_class].key)


class Route(Base):
    __tablename__ = "routes"
    __table_args__ = (
        CheckConstraint("price_economy >= 0", name="ck_route_economy_price"),
        CheckConstraint("price_business >= 0", name="ck_route_business_price"),
        CheckConstraint("price_first_class >= 0", name="ck_route_first_price"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    price_economy: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_business: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_first_class: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    def price(self, seat_class: SeatClass) -> Decimal:
        return getattr(self, ROUTE_PRICES[seat_class].key)


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        UniqueConstraint("flight_number", name="uq_flight_number"),
        CheckConstraint("seat_economy >= 0", name="ck_economy_available_non_negative"),
        CheckConstraint("seat_business >= 0", name="ck_business_available_non_negative"),
        CheckConstraint("seat_first_class >= 0", name="ck_first_available_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_number: Mapped[str] = mapped_column(String(10), nullable=False)
    route_id: Mapped[int] = mapped_column(ForeignKey("routes.id"), nullable=False)
    aircraft_id: Mapped[int] = mapped_column(ForeignKey("aircraft.id"), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[FlightStatus] = mapped_column(
        _enum_column(FlightStatus, "flight_status"), default=FlightStatus.SCHEDULED, nullable=False
    )
    # Available seats per class, mutated only by the inventory store.
    seat_economy: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_business: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_first_class: Mapped[int] = mapped_column(Integer, nullable=False)
    # Aircraft configuration at scheduling time.
    capacity_economy: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity_business: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity_first_class: Mapped[int] = mapped_column(Integer, nullable=False)

    route: Mapped[Route] = relationship()
    aircraft: Mapped[Aircraft] = relationship()
    bookings: Mapped[List["Booking"]] = relationship(back_populates="flight")

    @property
    def is_bookable(self) -> bool:
        return self.status in BOOKABLE_FLIGHT_STATUSES

    def available(self, seat_class: SeatClass) -> int:
        return getattr(self, SEAT_COUNTERS[seat_class].key)

    def capacity(self, seat_class: SeatClass) -> int:
        return getattr(self, SEAT_CAPACITIES[seat_class].key)


class Passenger(Base):
    __tablename__ = "passengers"
    __table_args__ = (UniqueConstraint("passport_number", name="uq_passenger_passport"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    passport_number: Mapped[str] = mapped_column(String(20), nullable=False)
    nationality: Mapped[str] = mapped_column(String(50), nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="passenger")


_ACTIVE_ROWS = text("status != 'Cancelled'")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_active_seat",
            "flight_id",
            "seat_class",
            "seat_number",
            unique=True,
            sqlite_where=_ACTIVE_ROWS,
            postgresql_where=_ACTIVE_ROWS,
        ),
        Index(
            "uq_active_passenger",
            "flight_id",
            "passenger_id",
            unique=True,
            sqlite_where=_ACTIVE_ROWS,
            postgresql_where=_ACTIVE_ROWS,
        ),
        Index("ix_bookings_user_flight", "user_id", "flight_id"),
        CheckConstraint("fare >= 0", name="ck_booking_fare_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    flight_id: Mapped[int] = mapped_column(ForeignKey("flights.id"), nullable=False)
    passenger_id: Mapped[int] = mapped_column(ForeignKey("passengers.id"), nullable=False)
    seat_class: Mapped[SeatClass] = mapped_column(_enum_column(SeatClass, "seat_class"), nullable=False)
    seat_number: Mapped[str] = mapped_column(String(6), nullable=False)
    fare: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        _enum_column(BookingStatus, "booking_status"), default=BookingStatus.PENDING, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    flight: Mapped[Flight] = relationship(back_populates="bookings")
    passenger: Mapped[Passenger] = relationship(back_populates="bookings")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


# Fixed seat class lookup tables; the only place class -> column is decided.
SEAT_COUNTERS = {
    SeatClass.ECONOMY: Flight.seat_economy,
    SeatClass.BUSINESS: Flight.seat_business,
    SeatClass.FIRST_CLASS: Flight.seat_first_class,
}
SEAT_CAPACITIES = {
    SeatClass.ECONOMY: Flight.capacity_economy,
    SeatClass.BUSINESS: Flight.capacity_business,
    SeatClass.FIRST_CLASS: Flight.capacity_first_class,
}
ROUTE_PRICES = {
    SeatClass.ECONOMY: Route.price_economy,
    SeatClass.BUSINESS: Route.price_business,
    SeatClass.FIRST_CLASS: Route.price_first_class,
}
AIRCRAFT_SEATS = {
    SeatClass.ECONOMY: Aircraft.seat_economy,
    SeatClass.BUSINESS: Aircraft.seat_business,
    SeatClass.FIRST_CLASS: Aircraft.seat_first_class,
}
