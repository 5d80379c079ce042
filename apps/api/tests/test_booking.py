"""Tests for the Cal.com booking proxy."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from portal.booking.cal_client import (
    MISSING_KEY_ERROR,
    BookingConfig,
    CalComClient,
    build_booking_payload,
    confirmation_message,
    flatten_booking,
)
from portal.booking.routes import get_cal_client
from portal.main import app

BOOKING = {
    "id": 42,
    "uid": "bk_abc",
    "start": "2025-03-14T15:00:00.000Z",
    "end": "2025-03-14T15:30:00.000Z",
    "duration": 30,
    "meetingUrl": "https://cal.com/video/bk_abc",
    "eventTypeId": 7,
    "attendees": [{"name": "Sam Renter", "email": "sam@example.com"}],
    "hosts": [{"name": "Leo Leasing", "email": "leasing@example.com"}],
    "eventType": {"slug": "property-tour"},
}

TOOL_CALL = {
    "call": {"call_id": "call_123"},
    "args": {
        "startIsoUtc": "2025-03-14T15:00:00Z",
        "attendee": {"name": "Sam Renter", "email": "sam@example.com", "timeZone": "UTC"},
        "eventTypeId": 7,
    },
}


def mock_cal(handler):
    """Route the Cal.com client's requests to ``handler``."""
    real_client = httpx.AsyncClient
    return patch(
        "portal.booking.cal_client.httpx.AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


@pytest.fixture
def cal_client():
    client = CalComClient(BookingConfig(api_key="cal_live_test"))
    app.dependency_overrides[get_cal_client] = lambda: client
    return client


# =============================================================================
# Payload & Response Shaping
# =============================================================================


class TestBuildBookingPayload:
    """Tests for build_booking_payload."""

    def test_maps_agent_arguments(self):
        payload = build_booking_payload(TOOL_CALL)
        assert payload == {
            "start": "2025-03-14T15:00:00Z",
            "attendee": TOOL_CALL["args"]["attendee"],
            "eventTypeId": 7,
            "metadata": {"retell_call_id": "call_123"},
        }

    def test_keeps_agent_metadata(self):
        body = {"args": {"metadata": {"source": "voice"}}, "call": {"call_id": "c1"}}
        assert build_booking_payload(body)["metadata"] == {
            "source": "voice",
            "retell_call_id": "c1",
        }

    def test_empty_body(self):
        assert build_booking_payload({}) == {"metadata": {"retell_call_id": None}}

    @pytest.mark.parametrize(
        "body",
        [
            {"args": ["startIsoUtc"], "call": "call_123"},
            {"args": {"metadata": "voice"}, "call": None},
            {"args": "oops", "call": 7},
        ],
    )
    def test_sections_that_are_not_objects(self, body):
        assert build_booking_payload(body) == {"metadata": {"retell_call_id": None}}



class TestFlattenBooking:
    """Tests for flatten_booking and the confirmation sentence."""

    def test_fields(self):
        fields = flatten_booking(BOOKING)

        assert fields["booking_id"] == 42
        assert fields["booking_uid"] == "bk_abc"
        assert fields["meeting_url"] == "https://cal.com/video/bk_abc"
        assert fields["attendee_email"] == "sam@example.com"
        assert fields["host_name"] == "Leo Leasing"
        assert fields["event_type_name"] == "property-tour"
        assert fields["duration_minutes"] == 30
        assert fields["raw"] == BOOKING

    def test_location_used_without_meeting_url(self):
        data = {"location": "https://meet.example/room"}
        assert flatten_booking(data)["meeting_url"] == "https://meet.example/room"

    def test_sparse_booking(self):
        fields = flatten_booking({})
        assert fields["attendee_name"] is None
        assert fields["host_email"] is None

    def test_confirmation_message(self):
        message = confirmation_message("2025-03-14T15:00:00.000Z")
        assert message.startswith("Great! I've scheduled your tour for 3/14/2025 at 3:00:00 PM.")

    def test_confirmation_without_start(self):
        assert "the requested time" in confirmation_message(None)

    def test_odd_shapes(self):
        fields = flatten_booking(
            {"attendees": "sam", "hosts": [], "eventType": ["tour"], "start": 1710428400}
        )
        assert fields["attendee_name"] is None
        assert fields["host_email"] is None
        assert fields["event_type_name"] is None
        assert "the requested time" in fields["message"]



# =============================================================================
# Cal.com Client
# =============================================================================


class TestCalComClient:
    """Tests for CalComClient.create_booking."""

    async def test_missing_api_key(self):
        result = await CalComClient(BookingConfig(api_key="")).create_booking(TOOL_CALL)
        assert result.to_response() == {"ok": False, "error": MISSING_KEY_ERROR}

    async def test_success_unwraps_data(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"status": "success", "data": BOOKING})

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.ok is True
        assert result.status == 201
        assert result.fields["booking_uid"] == "bk_abc"
        assert seen["headers"]["Authorization"] == "Bearer key"
        assert seen["headers"]["cal-api-version"] == "2024-08-13"
        assert seen["body"]["metadata"] == {"retell_call_id": "call_123"}

    async def test_rejection_uses_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Slot no longer available"})

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.to_response() == {
            "ok": False,
            "status": 400,
            "error": "Slot no longer available",
        }

    async def test_rejection_without_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.error == "Booking failed"
        assert result.status == 500

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.ok is False
        assert "connection refused" in result.error

    async def test_data_as_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "success", "data": [BOOKING]})

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.ok is True
        assert result.fields["booking_uid"] == "bk_abc"

    async def test_empty_data_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": []})

        with mock_cal(handler):
            result = await CalComClient(BookingConfig(api_key="key")).create_booking(TOOL_CALL)

        assert result.ok is True
        assert result.fields["booking_id"] is None


# =============================================================================
# Route
# =============================================================================


class TestBookingRoute:
    """Tests for /api/book-with-cal."""

    async def test_options_preflight(self, client):
        response = await client.options("/api/book-with-cal")
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    async def test_other_methods_rejected(self, client, method):
        response = await client.request(method, "/api/book-with-cal")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    async def test_missing_api_key(self, client):
        app.dependency_overrides[get_cal_client] = lambda: CalComClient(
            BookingConfig(api_key="")
        )
        response = await client.post("/api/book-with-cal", json=TOOL_CALL)
        assert response.status_code == 200
        assert response.json() == {"ok": False, "error": MISSING_KEY_ERROR}

    async def test_malformed_json(self, client, cal_client):
        response = await client.post(
            "/api/book-with-cal",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200
        assert response.json()["ok"] is False

    async def test_non_object_body(self, client, cal_client):
        response = await client.post("/api/book-with-cal", json=[1, 2])
        assert response.json() == {
            "ok": False,
            "error": "Request body must be a JSON object",
        }

    async def test_successful_booking(self, client, cal_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": BOOKING})

        with mock_cal(handler):
            response = await client.post("/api/book-with-cal", json=TOOL_CALL)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["status"] == 200
        assert body["booking_id"] == 42
        assert body["attendee_name"] == "Sam Renter"
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_browser_preflight(self, client):
        response = await client.options(
            "/api/book-with-cal",
            headers={
                "Origin": "https://agent.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert "access-control-allow-credentials" not in response.headers

    async def test_cross_origin_post_keeps_wildcard(self, client, cal_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": BOOKING})

        with mock_cal(handler):
            response = await client.post(
                "/api/book-with-cal",
                json=TOOL_CALL,
                headers={"Origin": "https://agent.example"},
            )

        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers

    async def test_head_rejected(self, client):
        response = await client.head("/api/book-with-cal")
        assert response.status_code == 405
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_list_data_from_cal(self, client, cal_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [BOOKING]})

        with mock_cal(handler):
            response = await client.post("/api/book-with-cal", json=TOOL_CALL)

        assert response.status_code == 200
        assert response.json()["booking_uid"] == "bk_abc"

    async def test_non_object_sections(self, client, cal_client):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json={"data": BOOKING})

        body = {"args": ["x"], "call": "call_123", "metadata": 5}
        with mock_cal(handler):
            response = await client.post("/api/book-with-cal", json=body)

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert sent == {"metadata": {"retell_call_id": None}}

    async def test_unexpected_failure_reported_in_envelope(self, client):
        failing = MagicMock()
        failing.create_booking = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_cal_client] = lambda: failing

        response = await client.post("/api/book-with-cal", json=TOOL_CALL)

        assert response.status_code == 200
        assert response.json() == {"ok": False, "error": "boom"}
        assert response.headers["access-control-allow-origin"] == "*"
