"""
API v1 router setup
"""
from fastapi import APIRouter

from app.api.v1 import slots, bookings

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (booking pages)
# ============================================================================
api_v1_router.include_router(
    slots.router,
    tags=["Public"]
)

api_v1_router.include_router(
    bookings.router,
    tags=["Public"]
)
