import json

import pytest

from flight_booking import cli


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"


def _run(capsys, db_url, *argv):
    code = cli.main(["--db-url", db_url, *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_seed_and_list_flights(capsys, db_url):
    code, out, _ = _run(capsys, db_url, "seed", "--flights", "3", "--passengers", "10", "--bookings", "4")

    assert code == 0
    assert "flights" in out

    code, out, _ = _run(capsys, db_url, "flights")
    assert code == 0
    assert "AR1000" in out
    assert "AR1002" in out


def test_book_then_cancel(capsys, db_url, tmp_path):
    _run(capsys, db_url, "seed", "--flights", "1", "--passengers", "0", "--bookings", "0")
    draft = tmp_path / "draft.json"
    draft.write_text(
        json.dumps(
            [
                {
                    "name": "Cli Traveler",
                    "date_of_birth": "1975-07-07",
                    "passport_number": "CLI00001",
                    "nationality": "FR",
                    "gender": "Female",
                    "seat_class": "Economy",
                }
            ]
        ),
        encoding="utf-8",
    )

    code, out, _ = _run(capsys, db_url, "--user", "7", "book", "1", str(draft))
    assert code == 0
    assert "CLI00001" in out
    assert "1E" in out
    assert "Total fare for flight AR1000" in out

    code, out, err = _run(capsys, db_url, "--user", "7", "book", "1", str(draft))
    assert code == 1
    assert "already booked flight 1" in err

    code, out, _ = _run(capsys, db_url, "--user", "7", "cancel", "1")
    assert code == 0
    assert out.strip() == "Booking 1 is now Cancelled."

    code, out, _ = _run(capsys, db_url, "--user", "8", "bookings")
    assert "No bookings found." in out
    assert "Page 1 of 1" in out


def test_errors_are_reported(capsys, db_url):
    _run(capsys, db_url, "init-db")

    code, _, err = _run(capsys, db_url, "cancel-flight", "99")

    assert code == 1
    assert err.startswith("Error: flight 99 not found")
