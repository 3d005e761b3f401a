"""API v1 Router - Aggregates all v1 endpoints"""

from datetime import UTC, datetime

from fastapi import APIRouter

from vlada.api.v1.bills import router as bills_router
from vlada.api.v1.firebase import router as firebase_router

# Create the main API router
api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness check; does not touch Firebase."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
    }


# Include all sub-routers
api_router.include_router(firebase_router)
api_router.include_router(bills_router)
