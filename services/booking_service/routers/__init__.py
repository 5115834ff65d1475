"""Booking service routers package."""

from services.booking_service.routers.admin import router as admin_router
from services.booking_service.routers.bookings import router as bookings_router
from services.booking_service.routers.checkins import router as checkins_router
from services.booking_service.routers.internal import router as internal_router

__all__ = ["admin_router", "bookings_router", "checkins_router", "internal_router"]
