from datetime import date

import pytest

from flight_booking.commands import Actor, BookingDraft, PassengerDetails
from flight_booking.config import Settings, load_settings
from flight_booking.errors import BookingCapExceeded, InvalidBookingDraft, InvalidSeatClass
from flight_booking.models import SeatClass
from flight_booking.services import BookingService

TODAY = date(2026, 1, 1)


def test_validate_normalizes_passports_and_names():
    raw = PassengerDetails(
        name="  Ada Lovelace ",
        date_of_birth=date(1990, 1, 1),
        passport_number=" ab12345 ",
        nationality="GB",
        gender="Female",
        seat_class=SeatClass.BUSINESS,
    )

    draft = BookingDraft(1, [raw]).validate(4, today=TODAY)

    assert isinstance(draft.passengers, tuple)
    assert draft.passengers[0].passport_number == "AB12345"
    assert draft.passengers[0].name == "Ada Lovelace"


def test_validate_collects_every_problem(passenger):
    bad = PassengerDetails(
        name="",
        date_of_birth=date(2030, 1, 1),
        passport_number="a-1",
        nationality="US",
        gender="Male",
        seat_class=SeatClass.ECONOMY,
    )

    with pytest.raises(InvalidBookingDraft) as excinfo:
        BookingDraft(1, [bad, passenger("DUPLI01"), passenger("dupli01")]).validate(4, today=TODAY)

    assert excinfo.value.errors == [
        "All fields are required for passenger 1.",
        "Date of birth cannot be in the future for passenger 1.",
        "Invalid passport number format for passenger 1.",
        "Duplicate passport number detected for passenger 3.",
    ]


@pytest.mark.parametrize("count", [0, 5])
def test_ticket_count_bounds(count, passenger):
    draft = BookingDraft(1, [passenger(f"COUNT{i:03d}") for i in range(count)])

    with pytest.raises(InvalidBookingDraft) as excinfo:
        draft.validate(4, today=TODAY)

    assert excinfo.value.errors == ["You can book between 1 and 4 tickets."]


def test_draft_from_dict():
    draft = BookingDraft.from_dict(
        {
            "flight_id": "3",
            "passengers": [
                {
                    "name": "Grace Hopper",
                    "date_of_birth": "1906-12-09",
                    "passport_number": "GH190612",
                    "nationality": "US",
                    "gender": "Female",
                    "seat_class": "first class",
                }
            ],
        }
    )

    assert draft.flight_id == 3
    assert draft.passengers[0].seat_class is SeatClass.FIRST_CLASS
    assert BookingDraft.from_dict(draft.to_dict()) == draft


def test_draft_from_dict_rejects_bad_input():
    with pytest.raises(InvalidBookingDraft):
        BookingDraft.from_dict({"passengers": []})
    with pytest.raises(InvalidBookingDraft):
        PassengerDetails.from_dict({"date_of_birth": "17/05/1990", "seat_class": "Economy"})
    with pytest.raises(InvalidSeatClass):
        PassengerDetails.from_dict({"date_of_birth": "1990-05-17", "seat_class": "Premium"})


def test_load_settings_reads_environment():
    settings = load_settings(
        {
            "FLIGHT_BOOKING_DB_URL": "sqlite+pysqlite:///:memory:",
            "FLIGHT_BOOKING_MAX_TICKETS": "2",
            "FLIGHT_BOOKING_PAGE_SIZE": "10",
            "FLIGHT_BOOKING_LOG_LEVEL": "debug",
            "FLIGHT_BOOKING_ECHO_SQL": "yes",
        }
    )

    assert settings.db_url == "sqlite+pysqlite:///:memory:"
    assert settings.max_tickets_per_user == 2
    assert settings.page_size == 10
    assert settings.log_level == "DEBUG"
    assert settings.echo_sql is True
    assert load_settings({}) == Settings()


def test_load_settings_rejects_zero_cap():
    with pytest.raises(ValueError):
        load_settings({"FLIGHT_BOOKING_MAX_TICKETS": "0"})


def test_service_picks_up_environment(monkeypatch, session_factory, make_flight, passenger):
    monkeypatch.setenv("FLIGHT_BOOKING_MAX_TICKETS", "1")
    service = BookingService(session_factory)
    flight_id = make_flight()

    assert service.settings.max_tickets_per_user == 1
    service.create_bookings(BookingDraft(flight_id, [passenger("ENV00001")]), Actor(user_id=3))
    with pytest.raises(BookingCapExceeded):
        service.create_bookings(BookingDraft(flight_id, [passenger("ENV00002")]), Actor(user_id=3))
