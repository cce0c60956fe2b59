"""Call API — submit one upstream call through the paced queue.

Learn: The handler validates the three required fields, hands the whole
body to the dispatcher as an opaque payload, and awaits its future. The
await blocks only this request; other callers keep queueing behind it.
Upstream failures arrive as outcomes, so the response is always 200 once
the request reaches the queue.
"""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pacequeue.api.deps import get_dispatcher
from pacequeue.dispatcher import PacedDispatcher
from pacequeue.schemas.call import CallRequest, CallResponse

logger = structlog.get_logger()

router = APIRouter()

CALL_PATH = "/api/call"


def _missing_fields_response() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Missing required fields"},
    )


async def call_validation_handler(request: Request, exc: RequestValidationError):
    """Answer an unreadable /api/call body with the 400 shape, not a 422.

    Other routes keep FastAPI's default validation response.
    """
    if request.url.path != CALL_PATH:
        return await request_validation_exception_handler(request, exc)
    logger.info("call.rejected", reason="invalid_body", errors=len(exc.errors()))
    return _missing_fields_response()


@router.post(CALL_PATH, response_model=CallResponse, response_model_exclude_none=True)
async def submit_call(
    body: CallRequest,
    dispatcher: PacedDispatcher = Depends(get_dispatcher),
):
    """Queue an upstream call and wait for its outcome."""
    missing = body.missing_fields()
    if missing:
        logger.info("call.rejected", missing=missing)
        return _missing_fields_response()

    payload = body.model_dump()
    logger.info(
        "call.received",
        country_id=payload["country_id"],
        operator_id=payload["operator_id"],
        queue_length=dispatcher.status().queue_length,
    )

    outcome = await dispatcher.submit(payload)

    return CallResponse(
        success=outcome.status,
        phone_number=outcome.phone_number,
        queueStatus=dispatcher.status().to_dict(),
        error=outcome.error,
        retryable=outcome.retryable,
    )
