#!/usr/bin/env python3
"""
Burst demo — fire several calls at once and watch them drain one by one.

Sends N concurrent POST /api/call requests, polls /queue/status while
they wait, then prints when each caller got its answer. With the default
5s interval, answers arrive roughly 5s apart in submission order.

Run with: python examples/burst.py --count 3 --api-key KEY
Server must be running: pacequeue serve
"""

import argparse
import asyncio
import sys
import time

import httpx

BASE = "http://localhost:3099"


async def _call(client: httpx.AsyncClient, n: int, body: dict, t0: float) -> None:
    resp = await client.post("/api/call", json=body)
    data = resp.json()
    elapsed = time.monotonic() - t0
    result = data.get("phone_number") or data.get("error") or "no number"
    print(f"  [{elapsed:6.1f}s] call #{n}: success={data.get('success')} {result}")


async def _watch(client: httpx.AsyncClient, t0: float) -> None:
    while True:
        await asyncio.sleep(1.0)
        status = (await client.get("/queue/status")).json()
        elapsed = time.monotonic() - t0
        print(f"  [{elapsed:6.1f}s] queued={status['queueLength']} busy={status['processing']} "
              f"est_wait={status['waitingTime'] / 1000:.0f}s")


async def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument("--api-key", default="demo-key")
    parser.add_argument("--country-id", default="1")
    parser.add_argument("--operator-id", default="1")
    args = parser.parse_args()

    async with httpx.AsyncClient(base_url=BASE, timeout=None) as client:
        try:
            (await client.get("/health")).raise_for_status()
        except httpx.HTTPError:
            print(f"Server not reachable at {BASE}. Start it with: pacequeue serve")
            sys.exit(1)

        body = {"api_key": args.api_key, "country_id": args.country_id, "operator_id": args.operator_id}
        t0 = time.monotonic()
        print(f"Sending {args.count} calls at once...")

        watcher = asyncio.create_task(_watch(client, t0))
        try:
            await asyncio.gather(*(_call(client, n, body, t0) for n in range(1, args.count + 1)))
        finally:
            watcher.cancel()

    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
