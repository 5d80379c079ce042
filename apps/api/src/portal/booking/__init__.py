"""Booking module: Cal.com proxy for the voice agent."""

from portal.booking.cal_client import BookingConfig, BookingResult, CalComClient
from portal.booking.routes import router as booking_router

__all__ = ["BookingConfig", "BookingResult", "CalComClient", "booking_router"]
