"""Booking proxy route called by the voice agent's booking tool.

Every answer is a 200 JSON envelope with ``ok`` set, except for methods
other than POST/OPTIONS. Failures inside the booking itself are reported
in the envelope rather than as a server error. CORS headers are set on
every response since the endpoint is called cross-origin.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from portal.booking.cal_client import BookingResult, CalComClient

logger = logging.getLogger("leo-portal-booking")

router = APIRouter(tags=["Booking"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

BOOKING_PATH = "/api/book-with-cal"


def get_cal_client() -> CalComClient:
    """Dependency providing the Cal.com client."""
    return CalComClient()


def _json(body: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=CORS_HEADERS)


@router.api_route(
    BOOKING_PATH,
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
)
async def book_with_cal(
    request: Request,
    cal_client: CalComClient = Depends(get_cal_client),
):
    """Book a tour on Cal.com for the caller."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    if request.method != "POST":
        return _json({"error": "Method not allowed"}, status_code=405)

    raw = await request.body()
    try:
        body = json.loads(raw or b"null")
    except ValueError as e:
        logger.warning(f"Malformed booking request: {e}")
        return _json({"ok": False, "error": str(e)})
    if not isinstance(body, dict):
        return _json({"ok": False, "error": "Request body must be a JSON object"})

    try:
        result = await cal_client.create_booking(body)
    except Exception as e:
        logger.error(f"Booking request failed: {e}")
        result = BookingResult(ok=False, error=str(e))
    return _json(result.to_response())
