"""Cal.com integration for booking tours from voice calls.

The voice agent calls the booking proxy with the arguments its LLM filled
in; this client turns them into a Cal.com v2 booking and flattens the
answer into the fields the agent reads back to the caller.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

logger = logging.getLogger("leo-portal-booking")

CAL_BOOKINGS_URL = "https://api.cal.com/v2/bookings"
CAL_API_VERSION = "2024-08-13"

MISSING_KEY_ERROR = "CAL_COM_API_KEY environment variable is not set in Netlify"


@dataclass
class BookingConfig:
    """Cal.com configuration from environment."""

    api_key: str
    bookings_url: str = CAL_BOOKINGS_URL
    timeout: float = 15.0

    @classmethod
    def from_env(cls) -> "BookingConfig":
        """Load booking config from environment variables."""
        api_key = os.getenv("CAL_COM_API_KEY", "")
        if not api_key:
            logger.warning("CAL_COM_API_KEY not set - bookings will be rejected")
        return cls(api_key=api_key)

    def is_configured(self) -> bool:
        """Check if Cal.com is configured."""
        return bool(self.api_key)


@dataclass
class BookingResult:
    """Outcome of a booking attempt, serialized as the proxy's response body."""

    ok: bool
    status: int | None = None
    error: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"ok": self.ok}
        if self.status is not None:
            body["status"] = self.status
        if self.error is not None:
            body["error"] = self.error
        body.update(self.fields)
        return body


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_dict(value: Any) -> dict[str, Any]:
    """First element of a list of objects, or the object itself."""
    if isinstance(value, list):
        value = value[0] if value else None
    return _as_dict(value)


def build_booking_payload(body: dict[str, Any]) -> dict[str, Any]:
    """Translate the agent's tool call into a Cal.com booking request.

    Keys the agent left out are omitted, and sections that are not JSON
    objects are treated as empty. The call id is copied into the booking
    metadata so Cal.com webhooks can be matched to the call.
    """
    args = _as_dict(body.get("args"))
    call = _as_dict(body.get("call"))

    metadata = dict(_as_dict(args.get("metadata")))
    metadata["retell_call_id"] = call.get("call_id")

    payload = {
        "start": args.get("startIsoUtc"),
        "attendee": args.get("attendee"),
        "lengthInMinutes": args.get("lengthInMinutes"),
        "eventTypeId": args.get("eventTypeId"),
        "eventTypeSlug": args.get("eventTypeSlug"),
        "username": args.get("username"),
        "teamSlug": args.get("teamSlug"),
        "organizationSlug": args.get("organizationSlug"),
        "metadata": metadata,
    }
    return {key: value for key, value in payload.items() if value is not None}


def confirmation_message(start: str | None) -> str:
    """Sentence the voice agent reads back once the tour is booked."""
    when = "the requested time"
    if isinstance(start, str) and start:
        try:
            moment = datetime.fromisoformat(start.replace("Z", "+00:00"))
            clock = moment.strftime("%I:%M:%S %p").lstrip("0")
            when = f"{moment.month}/{moment.day}/{moment.year} at {clock}"
        except ValueError:
            when = start
    return (
        f"Great! I've scheduled your tour for {when}. "
        "You'll receive a confirmation email with the meeting link."
    )


def flatten_booking(data: dict[str, Any]) -> dict[str, Any]:
    """Pick the fields the agent needs out of a Cal.com booking."""
    attendee = _first_dict(data.get("attendees"))
    host = _first_dict(data.get("hosts"))
    event_type = _as_dict(data.get("eventType"))
    return {
        "booking_id": data.get("id"),
        "booking_uid": data.get("uid"),
        "meeting_url": data.get("meetingUrl") or data.get("location"),
        "start_time": data.get("start"),
        "end_time": data.get("end"),
        "duration_minutes": data.get("duration"),
        "attendee_name": attendee.get("name"),
        "attendee_email": attendee.get("email"),
        "host_name": host.get("name"),
        "host_email": host.get("email"),
        "event_type_name": event_type.get("slug"),
        "event_type_id": data.get("eventTypeId"),
        "message": confirmation_message(data.get("start")),
        "raw": data,
    }


class CalComClient:
    """Creates bookings through the Cal.com v2 API."""

    def __init__(self, config: BookingConfig | None = None):
        """Initialize Cal.com client.

        Args:
            config: Booking configuration. Loads from env if not provided.
        """
        self.config = config or BookingConfig.from_env()

    async def create_booking(self, body: dict[str, Any]) -> BookingResult:
        """Book a tour from the agent's tool-call body."""
        if not self.config.is_configured():
            return BookingResult(ok=False, error=MISSING_KEY_ERROR)

        payload = build_booking_payload(body)
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.post(
                    self.config.bookings_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.config.api_key}",
                        "Content-Type": "application/json",
                        "cal-api-version": CAL_API_VERSION,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Cal.com request failed: {e}")
            return BookingResult(ok=False, error=str(e))

        try:
            answer = response.json()
        except ValueError:
            answer = {"raw": response.text}
        if not isinstance(answer, dict):
            answer = {"raw": answer}

        if not response.is_success:
            error = answer.get("message") or answer.get("error") or "Booking failed"
            logger.warning(f"Cal.com rejected booking ({response.status_code}): {error}")
            return BookingResult(ok=False, status=response.status_code, error=str(error))

        # Cal.com answers some requests with a list of bookings
        data = _first_dict(answer.get("data") or answer)
        logger.info(f"Booked Cal.com booking {data.get('uid')}")
        return BookingResult(
            ok=True, status=response.status_code, fields=flatten_booking(data)
        )
