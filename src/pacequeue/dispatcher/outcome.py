"""Call outcomes and failure classification.

Learn: The dispatcher never lets an upstream exception escape. Whatever
the upstream raises is turned into a failed CallOutcome here, tagged
retryable when it belongs to the transient network classes (connection
reset, timeout, connection refused, DNS failure). Callers decide whether
to retry; the queue itself never does.
"""

import asyncio
import socket
from dataclasses import dataclass
from typing import Optional

import httpx

# Transient network failures, worth a retry by the caller.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    httpx.ReadError,
    asyncio.TimeoutError,
    ConnectionResetError,
    ConnectionRefusedError,
    socket.gaierror,
)


@dataclass(frozen=True)
class CallOutcome:
    """Result of one upstream call, as delivered to the waiting caller."""

    status: bool
    phone_number: str = ""
    error: Optional[str] = None
    retryable: Optional[bool] = None

    @classmethod
    def success(cls, phone_number: str) -> "CallOutcome":
        return cls(status=True, phone_number=phone_number or "")

    @classmethod
    def failure(cls, error: Optional[str] = None, retryable: Optional[bool] = None) -> "CallOutcome":
        return cls(status=False, phone_number="", error=error, retryable=retryable)

    def to_dict(self) -> dict:
        """Wire form — optional fields only when set."""
        data: dict = {"status": self.status, "phone_number": self.phone_number}
        if self.error is not None:
            data["error"] = self.error
        if self.retryable is not None:
            data["retryable"] = self.retryable
        return data


def is_retryable(exc: BaseException) -> bool:
    """True for transient network errors."""
    return isinstance(exc, RETRYABLE_ERRORS)


def classify_error(exc: BaseException) -> CallOutcome:
    """Convert an upstream exception into a failed outcome."""
    message = str(exc) or type(exc).__name__
    return CallOutcome.failure(error=message, retryable=is_retryable(exc))
