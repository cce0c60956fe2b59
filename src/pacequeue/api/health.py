"""Health check endpoint."""

from fastapi import APIRouter, Depends

from pacequeue import __version__
from pacequeue.api.deps import get_dispatcher
from pacequeue.dispatcher import PacedDispatcher

router = APIRouter()


@router.get("/health")
async def health_check(dispatcher: PacedDispatcher = Depends(get_dispatcher)):
    """Server status, version, and dispatcher counters."""
    return {
        "status": "ok",
        "server": "ok",
        "version": __version__,
        "dispatcher": {
            "running": dispatcher.running,
            "min_interval_ms": dispatcher.min_interval_ms,
            **dispatcher.get_stats(),
        },
    }
