"""API route aggregation.

All routers registered here get mounted in main.py. Paths are fixed by
existing clients (/api/call, /queue/*), so there is no version prefix.
"""

from fastapi import APIRouter

from pacequeue.api.calls import router as calls_router
from pacequeue.api.health import router as health_router
from pacequeue.api.queue import router as queue_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(calls_router, tags=["calls"])
api_router.include_router(queue_router, tags=["queue"])
