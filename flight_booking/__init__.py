"""Seat inventory allocation and booking lifecycle engine."""
from typing import Any

from .commands import Actor, BookingDraft, PassengerDetails
from .config import Settings, load_settings
from .database import create_session_factory, init_db, session_scope
from .dataset import generate_sample_data
from .errors import (
    BookingCapExceeded,
    BookingError,
    DuplicatePassenger,
    FlightNotBookable,
    InsufficientInventory,
    InvalidBookingDraft,
    InvalidFlightTransition,
    InvalidSeatClass,
    InvalidStatus,
    InvalidTransition,
    NoSeatAvailable,
    NotFound,
    PermissionDenied,
)
from .models import BookingStatus, FlightStatus, SeatClass
from .services import BookingConfirmation, BookingService, BookingView


def create_app(*args: Any, **kwargs: Any):  # pragma: no cover - thin wrapper
    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


def cli_main(*args: Any, **kwargs: Any) -> int:  # pragma: no cover - thin wrapper
    from .cli import main as _cli_main

    return _cli_main(*args, **kwargs)


__all__ = [
    "Actor",
    "BookingDraft",
    "PassengerDetails",
    "Settings",
    "load_settings",
    "create_session_factory",
    "init_db",
    "session_scope",
    "generate_sample_data",
    "BookingError",
    "BookingCapExceeded",
    "DuplicatePassenger",
    "FlightNotBookable",
    "InsufficientInventory",
    "InvalidBookingDraft",
    "InvalidFlightTransition",
    "InvalidSeatClass",
    "InvalidStatus",
    "InvalidTransition",
    "NoSeatAvailable",
    "NotFound",
    "PermissionDenied",
    "BookingStatus",
    "FlightStatus",
    "SeatClass",
    "BookingConfirmation",
    "BookingService",
    "BookingView",
    "create_app",
    "cli_main",
]
