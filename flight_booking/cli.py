"""Command line interface for operating the booking engine."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from tabulate import tabulate

from .commands import Actor, BookingDraft
from .config import Settings, load_settings
from .database import init_db, session_scope
from .dataset import generate_sample_data
from .errors import BookingError
from .models import BookingStatus, FlightStatus
from .reference import summarize_inventory
from .services import BookingService, BookingView

_BOOKING_HEADERS = ["ID", "Flight", "Passenger", "Passport", "Class", "Seat", "Fare", "Status"]


def _booking_rows(bookings: Iterable[BookingView]) -> List[list]:
    return [
        [
            booking.id,
            booking.flight_number,
            booking.passenger_name,
            booking.passport_number,
            booking.seat_class.value,
            booking.seat_number,
            f"{booking.fare:,.2f}",
            booking.status.value,
        ]
        for booking in bookings
    ]


def _render_bookings(bookings: Sequence[BookingView]) -> str:
    if not bookings:
        return "No bookings found."
    return tabulate(_booking_rows(bookings), headers=_BOOKING_HEADERS, tablefmt="github")


def _read_draft(source: str, flight_id: int) -> BookingDraft:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    payload = json.loads(text)
    if isinstance(payload, list):
        payload = {"passengers": payload}
    payload["flight_id"] = flight_id
    return BookingDraft.from_dict(payload)


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage flight seat inventory and bookings.")
    parser.add_argument("--db-url", help="SQLAlchemy database URL (default: FLIGHT_BOOKING_DB_URL).")
    parser.add_argument(
        "--user",
        type=int,
        default=0,
        help="Acting user id for booking commands (default: 0).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database schema.")

    seed = commands.add_parser("seed", help="Populate the database with sample data.")
    seed.add_argument("--flights", type=int, default=25)
    seed.add_argument("--passengers", type=int, default=200)
    seed.add_argument("--bookings", type=int, default=100)

    commands.add_parser("flights", help="Show seat inventory for every flight.")

    book = commands.add_parser("book", help="Book passengers from a JSON draft.")
    book.add_argument("flight_id", type=int)
    book.add_argument("draft", help="Path to a JSON file with a 'passengers' list, or '-' for stdin.")

    bookings = commands.add_parser("bookings", help="List the acting user's bookings.")
    bookings.add_argument("--page", type=int, default=1)

    queue = commands.add_parser("queue", help="List bookings by status (admin).")
    queue.add_argument(
        "--status",
        choices=[status.value for status in BookingStatus],
        default=BookingStatus.PENDING.value,
    )
    queue.add_argument("--page", type=int, default=1)

    manifest = commands.add_parser("manifest", help="List a flight's bookings (admin).")
    manifest.add_argument("flight_id", type=int)
    manifest.add_argument("--active", action="store_true", help="Only Pending and Confirmed bookings.")

    status = commands.add_parser("set-status", help="Confirm or cancel a booking (admin).")
    status.add_argument("booking_id", type=int)
    status.add_argument("status", choices=[BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value])

    cancel = commands.add_parser("cancel", help="Cancel one of the acting user's bookings.")
    cancel.add_argument("booking_id", type=int)

    flight_status = commands.add_parser("flight-status", help="Change a flight's status (admin).")
    flight_status.add_argument("flight_id", type=int)
    flight_status.add_argument("status", choices=[status.value for status in FlightStatus])

    cancel_flight = commands.add_parser("cancel-flight", help="Cancel a flight and all its bookings (admin).")
    cancel_flight.add_argument("flight_id", type=int)

    return parser.parse_args(list(argv))


def run(args: argparse.Namespace, settings: Settings) -> str:
    session_factory = init_db(args.db_url or settings.db_url, settings=settings)
    service = BookingService(session_factory, settings)
    user = Actor(user_id=args.user)
    operator = Actor(user_id=args.user, is_admin=True)

    if args.command == "init-db":
        return "Database ready."
    if args.command == "seed":
        summary = generate_sample_data(
            session_factory,
            flights=args.flights,
            passengers=args.passengers,
            bookings=args.bookings,
            settings=settings,
        )
        return tabulate([summary], headers="keys", tablefmt="github")
    if args.command == "flights":
        with session_scope(session_factory) as session:
            rows = summarize_inventory(session)
        return tabulate(rows, headers="keys", tablefmt="github") if rows else "No flights found."
    if args.command == "book":
        confirmation = service.create_bookings(_read_draft(args.draft, args.flight_id), user)
        table = _render_bookings(confirmation.bookings)
        return f"{table}\n\nTotal fare for flight {confirmation.flight_number}: {confirmation.total_fare:,.2f}"
    if args.command == "bookings":
        page = service.list_user_bookings(user, args.page)
        return f"{_render_bookings(page.items)}\n\nPage {page.page} of {page.pages}"
    if args.command == "queue":
        page = service.list_bookings_by_status(args.status, operator, args.page)
        return f"{_render_bookings(page.items)}\n\nPage {page.page} of {page.pages}"
    if args.command == "manifest":
        statuses = (BookingStatus.PENDING, BookingStatus.CONFIRMED) if args.active else None
        return _render_bookings(service.list_flight_bookings(args.flight_id, operator, statuses))
    if args.command == "set-status":
        view = service.change_status(args.booking_id, args.status, operator)
        return f"Booking {view.id} is now {view.status.value}."
    if args.command == "cancel":
        view = service.cancel_booking(args.booking_id, user)
        return f"Booking {view.id} is now {view.status.value}."
    if args.command == "flight-status":
        cancelled = service.update_flight_status(args.flight_id, args.status, operator)
        return f"Flight {args.flight_id} is now {args.status}; {cancelled} booking(s) cancelled."
    if args.command == "cancel-flight":
        cancelled = service.cancel_flight(args.flight_id, operator)
        return f"Flight {args.flight_id} cancelled; {cancelled} booking(s) cancelled."
    raise ValueError(f"Unsupported command '{args.command}'.")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        output = run(args, settings)
    except (BookingError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
