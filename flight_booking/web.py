"""FastAPI application exposing the booking engine as a JSON API."""
from __future__ import annotations

import logging
from io import BytesIO, StringIO
from typing import Any, Dict, List, Literal, Optional

import pandas as pd
from fastapi import Body, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .commands import Actor, BookingDraft
from .config import Settings, load_settings
from .database import init_db
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
from .ledger import Page
from .services import BookingService, BookingView

logger = logging.getLogger(__name__)

StatusType = Literal["Pending", "Confirmed", "Cancelled"]
FlightStatusType = Literal["Scheduled", "Delayed", "Cancelled", "Completed"]


def _label(value: object) -> str:
    return str(getattr(value, "value", value))


def user_message(exc: BookingError) -> str:
    """Translate an engine error into the text shown to the person booking."""

    if isinstance(exc, (InsufficientInventory, NoSeatAvailable)):
        return f"No seats available in {_label(exc.seat_class)} class."
    if isinstance(exc, DuplicatePassenger):
        return f"Passenger with passport number {exc.passport_number} has already booked this flight."
    if isinstance(exc, BookingCapExceeded):
        if exc.remaining <= 0:
            return f"You have already booked the maximum of {exc.cap} tickets for this flight."
        return f"You can only book {exc.remaining} more ticket(s) for this flight."
    if isinstance(exc, InvalidTransition):
        return f"This booking has already been processed (currently {_label(exc.current)})."
    if isinstance(exc, NotFound):
        return f"{exc.entity.capitalize()} not found."
    if isinstance(exc, FlightNotBookable):
        return "Flight not found or unavailable for booking."
    if isinstance(exc, InvalidFlightTransition):
        return f"A {_label(exc.current).lower()} flight cannot be set to {_label(exc.requested)}."
    if isinstance(exc, PermissionDenied):
        return "You are not allowed to perform this action."
    return str(exc)


def _status_code(exc: BookingError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, PermissionDenied):
        return 403
    if isinstance(exc, (InvalidBookingDraft, InvalidSeatClass, InvalidStatus)):
        return 422
    return 409


def _actor(user_id: Optional[int], role: Optional[str]) -> Actor:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return Actor(user_id=user_id, is_admin=(role or "").lower() == "admin")


def _page_payload(page: Page[BookingView]) -> Dict[str, Any]:
    return {
        "items": [booking.as_dict() for booking in page.items],
        "page": page.page,
        "page_size": page.page_size,
        "total": page.total,
        "pages": page.pages,
    }


def _manifest_dataframe(bookings: List[BookingView]) -> pd.DataFrame:
    data = [
        {
            "Booking": booking.id,
            "Passenger": booking.passenger_name,
            "Passport": booking.passport_number,
            "Class": booking.seat_class.value,
            "Seat": booking.seat_number,
            "Fare": float(booking.fare),
            "Status": booking.status.value,
            "Booked At": booking.created_at,
        }
        for booking in bookings
    ]
    columns = ["Booking", "Passenger", "Passport", "Class", "Seat", "Fare", "Status", "Booked At"]
    return pd.DataFrame(data, columns=columns)


def create_app(service: Optional[BookingService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Return an application wired to ``service`` (or a fresh one built from settings)."""

    if service is None:
        settings = settings or load_settings()
        service = BookingService(init_db(settings.db_url, settings=settings), settings)

    app = FastAPI(title="Flight Booking", description="Seat inventory and booking lifecycle")

    @app.exception_handler(BookingError)
    async def _booking_error(request: Request, exc: BookingError) -> JSONResponse:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        content: Dict[str, Any] = {"detail": user_message(exc), "error": type(exc).__name__}
        if isinstance(exc, InvalidBookingDraft):
            content["errors"] = exc.errors
        if isinstance(exc, BookingCapExceeded):
            content["remaining"] = exc.remaining
        return JSONResponse(status_code=_status_code(exc), content=content)

    @app.post("/flights/{flight_id}/bookings", status_code=201)
    def create_bookings(
        flight_id: int,
        payload: Dict[str, Any] = Body(...),
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        draft = BookingDraft.from_dict({**payload, "flight_id": flight_id})
        return service.create_bookings(draft, actor).as_dict()

    @app.get("/flights/{flight_id}/inventory")
    def flight_inventory(flight_id: int) -> Dict[str, int]:
        return {seat_class.value: count for seat_class, count in service.flight_inventory(flight_id).items()}

    @app.get("/bookings")
    def my_bookings(
        page: int = Query(1, ge=1),
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        return _page_payload(service.list_user_bookings(actor, page))

    @app.get("/bookings/{booking_id}")
    def get_booking(
        booking_id: int,
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        return service.get_booking(booking_id, actor).as_dict()

    @app.post("/bookings/{booking_id}/cancel")
    def cancel_booking(
        booking_id: int,
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        return service.cancel_booking(booking_id, actor).as_dict()

    @app.get("/admin/bookings")
    def bookings_by_status(
        status: StatusType = Query("Pending"),
        page: int = Query(1, ge=1),
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        return _page_payload(service.list_bookings_by_status(status, actor, page))

    @app.post("/admin/bookings/{booking_id}/status")
    def change_status(
        booking_id: int,
        status: StatusType = Query(...),
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        return service.change_status(booking_id, status, actor).as_dict()

    @app.post("/admin/flights/{flight_id}/status")
    def update_flight_status(
        flight_id: int,
        status: FlightStatusType = Query(...),
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        cancelled = service.update_flight_status(flight_id, status, actor)
        return {"flight_id": flight_id, "status": status, "cancelled_bookings": cancelled}

    @app.post("/admin/flights/{flight_id}/cancel")
    def cancel_flight(
        flight_id: int,
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        actor = _actor(x_user_id, x_user_role)
        cancelled = service.cancel_flight(flight_id, actor)
        return {"flight_id": flight_id, "status": "Cancelled", "cancelled_bookings": cancelled}

    @app.get("/admin/flights/{flight_id}/manifest/{file_format}")
    def download_manifest(
        flight_id: int,
        file_format: Literal["csv", "xlsx"],
        x_user_id: Optional[int] = Header(None),
        x_user_role: Optional[str] = Header(None),
    ) -> StreamingResponse:
        actor = _actor(x_user_id, x_user_role)
        bookings = service.list_flight_bookings(flight_id, actor)
        dataframe = _manifest_dataframe(bookings)
        filename = f"flight_{flight_id}_manifest.{file_format}"
        headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}

        if file_format == "csv":
            buffer = StringIO()
            dataframe.to_csv(buffer, index=False)
            buffer.seek(0)
            return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv", headers=headers)

        binary = BytesIO()
        with pd.ExcelWriter(binary, engine="openpyxl") as writer:
            dataframe.to_excel(writer, index=False, sheet_name="Manifest")
        binary.seek(0)
        return StreamingResponse(
            binary,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    return app


__all__ = ["create_app", "user_message"]
