from datetime import datetime, timezone

import pytest

from agenda.schemas.availability.backend_schema import (
    BookingStatus, CustomBlockResult, normalize_booking_status, parse_bookings, parse_operating_slots,
)


@pytest.mark.parametrize("raw, expected", [
    ("done", BookingStatus.COMPLETED),
    ("CANCELLED", BookingStatus.CANCELED),
    ("confirmed", BookingStatus.PAID),
    ("RESERVED", BookingStatus.RESERVED),
    ("AVAILABLE", BookingStatus.AVAILABLE),
    ("BLOCKED", BookingStatus.BLOCKED),
    ("algo-raro", BookingStatus.PENDING),
    (None, BookingStatus.PENDING),
])
def test_normalize_booking_status(raw, expected):
    assert normalize_booking_status(raw) == expected


def test_status_falls_back_to_canonical():
    assert normalize_booking_status(None, "blocked") == BookingStatus.BLOCKED


def test_operating_slots_accept_both_casings():
    slots = parse_operating_slots({"slots": [
        {"academy_id": "a", "day_of_week": 1, "time": "06:00", "is_available": True},
        {"academyId": "a", "dayOfWeek": 2, "time": "07:00:00", "isAvailable": False},
    ]})

    assert [(s.day_of_week, s.time, s.is_available) for s in slots] == [
        (1, "06:00:00", True),
        (2, "07:00:00", False),
    ]


def test_invalid_records_are_dropped():
    slots = parse_operating_slots({"slots": [
        {"academy_id": "a", "day_of_week": 9, "time": "06:00"},
        {"academy_id": "a", "day_of_week": 1, "time": "nunca"},
        {"academy_id": "a", "day_of_week": 1, "time": "08:00"},
    ]})
    assert len(slots) == 1

    bookings = parse_bookings({"bookings": [{"id": "b1"}, {"id": "b2", "date": "2030-01-07T09:00:00Z"}]})
    assert [b.id for b in bookings] == ["b2"]


def test_missing_payload_key_returns_empty_list():
    assert parse_bookings({}) == []
    assert parse_operating_slots(None) == []


def test_booking_fields_are_normalized():
    [booking] = parse_bookings({"bookings": [{
        "id": 42,
        "franchise_id": "acad-1",
        "professorId": "prof-1",
        "student_id": "",
        "startAt": "2030-01-07T09:00:00.000Z",
        "status": "available",
    }]})

    assert booking.id == "42"
    assert booking.academy_id == "acad-1"
    assert booking.teacher_id == "prof-1"
    assert booking.student_id is None
    assert booking.date == datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)
    assert booking.is_open_availability
    assert not booking.is_occupied


def test_available_booking_with_student_counts_as_occupied():
    [booking] = parse_bookings([{
        "id": "b1", "date": "2030-01-07T09:00:00Z", "status": "AVAILABLE", "studentId": "aluno-1",
    }])
    assert booking.is_occupied


@pytest.mark.parametrize("status, occupied", [
    ("PAID", True),
    ("RESERVED", True),
    ("PENDING", True),
    ("BLOCKED", False),
    ("CANCELED", False),
])
def test_occupied_statuses(status, occupied):
    [booking] = parse_bookings([{"id": "b1", "date": "2030-01-07T09:00:00Z", "status": status}])
    assert booking.is_occupied is occupied


def test_custom_block_result_accepts_counts():
    assert len(CustomBlockResult.model_validate({"created": 3, "skipped": None}).created) == 3
    result = CustomBlockResult.model_validate({"created": [], "skipped": ["14:00"]})
    assert result.skipped == ["14:00"]
