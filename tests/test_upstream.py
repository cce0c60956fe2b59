"""smsgen client tests — request shape and response mapping.

Learn: httpx.MockTransport stands in for the provider, so the real
client code builds and sends the request.
"""

import httpx
import pytest

from pacequeue.config import Settings
from pacequeue.upstream import SmsGenClient, UpstreamResponseError, build_upstream, list_upstreams
from pacequeue.upstream.smsgen import parse_response

PAYLOAD = {"api_key": "key-123", "country_id": 7, "operator_id": 3}


def _client(handler) -> SmsGenClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SmsGenClient(base_url="https://sms.test/api/", http_client=http)


@pytest.mark.asyncio
async def test_request_shape_and_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"status": "success", "data": {"phone_number": "+447700900123"}})

    client = _client(handler)
    outcome = await client(PAYLOAD)
    await client._http.aclose()

    assert seen == {
        "method": "GET",
        "path": "/api/get-number/key-123",
        "params": {"country_id": "7", "operator_id": "3"},
    }
    assert outcome.status is True
    assert outcome.phone_number == "+447700900123"


@pytest.mark.asyncio
async def test_provider_refusal_is_failed_outcome():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "message": "No numbers available"})

    client = _client(handler)
    outcome = await client(PAYLOAD)
    await client._http.aclose()

    assert outcome.status is False
    assert outcome.phone_number == ""
    assert outcome.error == "No numbers available"
    assert outcome.retryable is False


@pytest.mark.asyncio
async def test_http_error_status_raises():
    def handler(request):
        return httpx.Response(503, text="maintenance")

    client = _client(handler)
    with pytest.raises(httpx.HTTPStatusError):
        await client(PAYLOAD)
    await client._http.aclose()


@pytest.mark.asyncio
async def test_non_json_body_raises():
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    client = _client(handler)
    with pytest.raises(UpstreamResponseError):
        await client(PAYLOAD)
    await client._http.aclose()


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open():
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    client = SmsGenClient(http_client=http)
    await client.aclose()
    assert not http.is_closed
    await http.aclose()


@pytest.mark.asyncio
async def test_aclose_closes_owned_client():
    client = SmsGenClient()
    await client.aclose()
    assert client._http.is_closed


def test_parse_response_missing_phone_number():
    outcome = parse_response({"status": "success", "data": {}})
    assert outcome.status is True
    assert outcome.phone_number == ""


@pytest.mark.parametrize("body", [[], {"data": {}}, {"status": "success"}, {"status": "success", "data": "x"}])
def test_parse_response_malformed(body):
    with pytest.raises(UpstreamResponseError):
        parse_response(body)


def test_parse_response_failure_without_message():
    outcome = parse_response({"status": "failed"})
    assert outcome.status is False
    assert outcome.error is None


def test_build_upstream_from_settings():
    settings = Settings(upstream_base_url="https://sms.test/api", upstream_timeout_seconds=5)
    client = build_upstream(settings)
    assert isinstance(client, SmsGenClient)
    assert client.base_url == "https://sms.test/api"
    assert client.name == "smsgen"
    assert list_upstreams() == ["smsgen"]


def test_build_upstream_unknown_name():
    with pytest.raises(ValueError, match="Unknown upstream"):
        build_upstream(Settings(), name="nope")
