from fastapi import APIRouter
from app.api.api_v1.endpoints import availability, unavailability, recurring, bookings

router = APIRouter()

# Include all routers
router.include_router(availability.router, prefix="/availability", tags=["Availability"])
router.include_router(unavailability.router, prefix="/unavailability", tags=["Unavailability"])
router.include_router(recurring.router, prefix="/recurring", tags=["Recurring Unavailability"])
router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])
