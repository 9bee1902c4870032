"""Top-level router for the /api/v1 endpoints.

Every route accepts an optional ``X-API-Key`` header. No key means anonymous
access; a key that is unknown or revoked is answered with 401 before the
handler runs.
"""

from fastapi import APIRouter, Depends

from app.api.v1.auth import optional_api_key
from app.api.v1.bookings import router as bookings_router
from app.api.v1.jobs import router as jobs_router
from app.api.v1.keys import router as keys_router
from app.api.v1.stats import router as stats_router

api_router = APIRouter(prefix="/api/v1", dependencies=[Depends(optional_api_key)])

api_router.include_router(bookings_router)
api_router.include_router(jobs_router)
api_router.include_router(stats_router)
api_router.include_router(keys_router)
