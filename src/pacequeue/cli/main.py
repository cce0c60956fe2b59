"""Pacequeue CLI — run the server and poke at a running queue.

Usage:
    pacequeue serve --port 3099                  # Run the HTTP server
    pacequeue status                             # Queue length, busy flag, wait estimate
    pacequeue clear                              # Drop every queued call
    pacequeue call -k KEY -c 1 -o 2              # Queue one call and wait for the number
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from datetime import datetime
from typing import Optional

import click
import httpx

from pacequeue import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3099"


def _api_url() -> str:
    return os.environ.get("PACEQUEUE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(timeout: Optional[float] = 30.0) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the pacequeue server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=timeout)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _read_json(r: httpx.Response) -> Optional[dict]:
    """Response body as a dict, or None when it is not a JSON object."""
    try:
        data = r.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _error_detail(r: httpx.Response, data: Optional[dict]) -> str:
    """Best description of a non-200 response from the server."""
    if data:
        if data.get("error"):
            return str(data["error"])
        if data.get("detail"):
            detail = data["detail"]
            return detail if isinstance(detail, str) else json.dumps(detail)
    return f"HTTP {r.status_code}"


def _format_ms(ms: int) -> str:
    return f"{ms / 1000:.1f}s"


def _format_epoch_ms(ms: int) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="pacequeue")
def main():
    """Pacequeue — paced FIFO queue in front of a rate-limited API."""


# ---------------------------------------------------------------------------
# pacequeue serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: PACEQUEUE_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: PACEQUEUE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes (dev only)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP server."""
    import uvicorn

    from pacequeue.config import settings

    host = host or settings.host
    port = port or settings.port
    click.echo(f"Pacequeue on {host}:{port} — one upstream call every {_format_ms(settings.min_interval_ms)}")
    uvicorn.run("pacequeue.main:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# pacequeue status
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def status(as_json: bool):
    """Show queue length, busy flag, and estimated wait."""
    _run(_status_impl(as_json))


async def _status_impl(as_json: bool):
    async with _client() as c:
        try:
            r = await c.get("/queue/status")
            r.raise_for_status()
        except httpx.HTTPError as e:
            _fail(f"could not reach {_api_url()}: {e}")
        data = _read_json(r)
    if data is None:
        _fail(f"unexpected response from {_api_url()}")

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    processing = click.style("busy", fg="yellow") if data["processing"] else click.style("idle", fg="green")
    click.secho("Queue:", bold=True)
    click.echo(f"  Length:     {data['queueLength']}")
    click.echo(f"  Worker:     {processing}")
    click.echo(f"  Last call:  {_format_epoch_ms(data['lastCallTime'])}")
    click.echo(f"  Est. wait:  {_format_ms(data['waitingTime'])}")


# ---------------------------------------------------------------------------
# pacequeue clear
# ---------------------------------------------------------------------------


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def clear(yes: bool):
    """Drop every queued call. The in-flight call still completes."""
    if not yes:
        click.confirm("Drop every queued call?", abort=True)
    _run(_clear_impl())


async def _clear_impl():
    async with _client() as c:
        try:
            r = await c.get("/queue/clear")
            r.raise_for_status()
        except httpx.HTTPError as e:
            _fail(f"could not reach {_api_url()}: {e}")
        data = _read_json(r)
    if data is None:
        _fail(f"unexpected response from {_api_url()}")

    click.secho(f"{data['message']} ({data.get('cleared', 0)} dropped)", fg="green")


# ---------------------------------------------------------------------------
# pacequeue call
# ---------------------------------------------------------------------------


@main.command()
@click.option("--api-key", "-k", required=True, help="Upstream API key")
@click.option("--country-id", "-c", required=True, help="Country ID")
@click.option("--operator-id", "-o", required=True, help="Operator ID")
def call(api_key: str, country_id: str, operator_id: str):
    """Queue one call and wait for its outcome."""
    _run(_call_impl(api_key, country_id, operator_id))


async def _call_impl(api_key: str, country_id: str, operator_id: str):
    body = {"api_key": api_key, "country_id": country_id, "operator_id": operator_id}

    # No client timeout: the wait is bounded by queue position, not us.
    async with _client(timeout=None) as c:
        try:
            r = await c.post("/api/call", json=body)
        except httpx.HTTPError as e:
            _fail(f"could not reach {_api_url()}: {e}")
        data = _read_json(r)

    if r.status_code != 200 or data is None:
        _fail(_error_detail(r, data))
    if not data.get("success"):
        error = data.get("error") or "upstream returned no number"
        hint = " (retryable)" if data.get("retryable") else ""
        _fail(f"{error}{hint}")

    click.secho(data["phone_number"], fg="green", bold=True)
    queue = data.get("queueStatus", {})
    click.echo(f"  {queue.get('queueLength', 0)} still queued, est. wait {_format_ms(queue.get('waitingTime', 0))}")


if __name__ == "__main__":
    main()
