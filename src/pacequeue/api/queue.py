"""Queue API — introspection and clearing.

Learn: Both endpoints are synchronous reads/writes of dispatcher state;
neither touches the in-flight upstream call.
"""

from fastapi import APIRouter, Depends

from pacequeue.api.deps import get_dispatcher
from pacequeue.dispatcher import PacedDispatcher
from pacequeue.schemas.call import ClearResponse, QueueStatusRead

router = APIRouter(prefix="/queue")


@router.get("/status", response_model=QueueStatusRead)
async def queue_status(dispatcher: PacedDispatcher = Depends(get_dispatcher)):
    """Queue length, busy flag, last dispatch time, estimated wait."""
    return dispatcher.status().to_dict()


@router.get("/clear", response_model=ClearResponse)
async def clear_queue(dispatcher: PacedDispatcher = Depends(get_dispatcher)):
    """Drop every queued call. The in-flight call still completes."""
    cleared = dispatcher.clear()
    return ClearResponse(cleared=cleared)
