"""
API v1 router setup
"""
from fastapi import APIRouter

from scheduling.api.v1 import availability, bookings

api_v1_router = APIRouter()

# ============================================================================
# PROVIDER AVAILABILITY ROUTES
# ============================================================================
api_v1_router.include_router(availability.router)

# ============================================================================
# BOOKING ROUTES
# ============================================================================
api_v1_router.include_router(bookings.router)


@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and authentication scheme."""
    return {
        "version": "1.0",
        "authentication": {
            "headers": ["X-Principal-Id", "X-Principal-Role"],
            "roles": ["customer", "provider"]
        }
    }
