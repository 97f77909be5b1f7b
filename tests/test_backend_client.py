import json
from datetime import date, datetime, timezone

import httpx
import pytest
import respx

from agenda.services.backend.backend_client import (
    AgendaBackendClient,
    BackendAuthError,
    BackendConnectionError,
    BackendNotFoundError,
    BackendRequestError,
)

BACKEND_URL = "https://franquia.test"


@pytest.fixture
async def backend_client():
    client = AgendaBackendClient(base_url=BACKEND_URL, access_token="token-docente")
    yield client
    await client.aclose()


@respx.mock
async def test_list_time_slots_sends_token_and_normalizes(backend_client):
    route = respx.get(f"{BACKEND_URL}/api/time-slots").respond(200, json={"slots": [
        {"academy_id": "acad-1", "day_of_week": 1, "time": "06:00", "is_available": True},
    ]})

    slots = await backend_client.list_time_slots("acad-1")

    request = route.calls[0].request
    assert request.url.params["academy_id"] == "acad-1"
    assert request.headers["Authorization"] == "Bearer token-docente"
    assert request.headers["Cache-Control"].startswith("no-cache")
    assert slots[0].time == "06:00:00"


@respx.mock
async def test_list_bookings_sends_utc_window(backend_client):
    route = respx.get(f"{BACKEND_URL}/api/bookings").respond(200, json={"bookings": [
        {"id": "b1", "teacher_id": "prof-1", "date": "2030-01-07T09:00:00Z", "status": "AVAILABLE"},
    ]})

    bookings = await backend_client.list_bookings(
        "prof-1",
        datetime(2030, 1, 7, 3, 0, tzinfo=timezone.utc),
        datetime(2030, 1, 14, 3, 0, tzinfo=timezone.utc),
    )

    params = route.calls[0].request.url.params
    assert params["teacher_id"] == "prof-1"
    assert params["from"] == "2030-01-07T03:00:00.000Z"
    assert params["to"] == "2030-01-14T03:00:00.000Z"
    assert [b.id for b in bookings] == ["b1"]


@respx.mock
async def test_bulk_create_payload_and_counts(backend_client):
    route = respx.post(f"{BACKEND_URL}/api/bookings/availability/bulk").respond(
        201, json={"created": 1, "skipped": 1}
    )
    slots = [{"startAt": "2030-01-07T09:00:00.000Z", "endAt": "2030-01-07T10:00:00.000Z",
              "professorNotes": "Horario disponible"}]

    result = await backend_client.bulk_create_availability("prof-1", "acad-1", slots)

    body = json.loads(route.calls[0].request.content)
    assert body == {"source": "PROFESSOR", "professorId": "prof-1", "academyId": "acad-1", "slots": slots}
    assert (result.created, result.skipped) == (1, 1)


@respx.mock
async def test_create_custom_block_payload(backend_client):
    route = respx.post(f"{BACKEND_URL}/api/teachers/prof-1/blocks/custom").respond(
        201, json={"created": [{"id": "x"}], "skipped": ["07:00"]}
    )

    result = await backend_client.create_custom_block("prof-1", "acad-1", date(2030, 1, 7), ["06:00", "07:00"], "Vacaciones")

    body = json.loads(route.calls[0].request.content)
    assert body == {"academy_id": "acad-1", "date": "2030-01-07", "hours": ["06:00", "07:00"], "notes": "Vacaciones"}
    assert len(result.created) == 1
    assert result.skipped == ["07:00"]


@respx.mock
async def test_delete_booking_accepts_empty_body(backend_client):
    route = respx.delete(f"{BACKEND_URL}/api/bookings/b1").respond(204)
    await backend_client.delete_booking("b1")
    assert route.called


@pytest.mark.parametrize("status_code, error", [
    (401, BackendAuthError),
    (403, BackendAuthError),
    (404, BackendNotFoundError),
    (409, BackendRequestError),
    (500, BackendRequestError),
])
@respx.mock
async def test_error_status_mapping(backend_client, status_code, error):
    respx.delete(f"{BACKEND_URL}/api/bookings/b1").respond(status_code, text="fallo")

    with pytest.raises(error) as exc_info:
        await backend_client.delete_booking("b1")
    assert exc_info.value.status_code == status_code


@respx.mock
async def test_connection_errors_are_wrapped(backend_client):
    respx.get(f"{BACKEND_URL}/api/time-slots").mock(side_effect=httpx.ConnectError("sin red"))

    with pytest.raises(BackendConnectionError):
        await backend_client.list_time_slots("acad-1")


@respx.mock
async def test_timeouts_are_wrapped(backend_client):
    respx.get(f"{BACKEND_URL}/api/bookings").mock(side_effect=httpx.ReadTimeout("lento"))

    with pytest.raises(BackendConnectionError):
        await backend_client.list_bookings(
            "prof-1", datetime(2030, 1, 7, tzinfo=timezone.utc), datetime(2030, 1, 8, tzinfo=timezone.utc)
        )
