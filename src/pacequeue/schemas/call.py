"""Pydantic schemas for the call and queue endpoints.

Learn: CallRequest allows extra fields. The body is handed to the
dispatcher as an opaque payload; only the three required fields are
checked here, and only for presence. Their types are not constrained
(a numeric api_key is as valid as a string one), and a falsy value such
as 0 or "" counts as missing. Required fields are Optional at the model
level so the route can answer a missing field with the service's own 400
shape instead of FastAPI's 422.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

REQUIRED_FIELDS = ("api_key", "country_id", "operator_id")


class CallRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    api_key: Optional[Any] = None
    country_id: Optional[Any] = None
    operator_id: Optional[Any] = None

    def missing_fields(self) -> list[str]:
        """Required fields that are absent or falsy."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]


class QueueStatusRead(BaseModel):
    queueLength: int
    processing: bool
    lastCallTime: int
    waitingTime: int


class CallResponse(BaseModel):
    success: bool
    phone_number: str
    queueStatus: QueueStatusRead
    error: Optional[str] = None
    retryable: Optional[bool] = None


class ClearResponse(BaseModel):
    message: str = "Queue cleared"
    cleared: int = Field(0, ge=0)
