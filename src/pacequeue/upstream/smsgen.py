"""smsgen.net client — rents a virtual phone number.

Learn: One GET per call:

  {base_url}/get-number/{api_key}?country_id=..&operator_id=..

The provider answers {"status": "success", "data": {"phone_number": ...}}
on success and {"status": "<other>", "message": ...} otherwise. A provider
"no" is a normal failed outcome; HTTP errors and unparseable bodies raise.
"""

from typing import Any, Optional

import httpx
import structlog

from pacequeue.dispatcher.outcome import CallOutcome
from pacequeue.upstream.base import UpstreamClient, UpstreamResponseError

logger = structlog.get_logger()


class SmsGenClient(UpstreamClient):
    """HTTP client for the smsgen.net get-number endpoint."""

    def __init__(
        self,
        base_url: str = "https://smsgen.net/api",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "smsgen"

    async def __call__(self, payload: Any) -> CallOutcome:
        api_key = payload["api_key"]
        params = {
            "country_id": payload["country_id"],
            "operator_id": payload["operator_id"],
        }
        log = logger.bind(country_id=params["country_id"], operator_id=params["operator_id"])
        log.info("smsgen.request")

        resp = await self._http.get(f"{self.base_url}/get-number/{api_key}", params=params)
        resp.raise_for_status()

        try:
            body = resp.json()
        except ValueError as e:
            raise UpstreamResponseError(f"Invalid JSON from upstream: {e}") from e

        outcome = parse_response(body)
        log.info("smsgen.response", success=outcome.status)
        return outcome

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()


def parse_response(body: Any) -> CallOutcome:
    """Map a provider response body to a CallOutcome."""
    if not isinstance(body, dict) or "status" not in body:
        raise UpstreamResponseError("Upstream response missing 'status'")

    if body["status"] != "success":
        message = body.get("message") or body.get("error")
        return CallOutcome.failure(
            error=str(message) if message else None,
            retryable=False,
        )

    data = body.get("data")
    if not isinstance(data, dict):
        raise UpstreamResponseError("Upstream success response missing 'data'")
    return CallOutcome.success(str(data.get("phone_number") or ""))
