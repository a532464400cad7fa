#!/usr/bin/env python3
"""Traffic generator: gives the dashboards something to draw.

RUN:  python scripts/generate_traffic.py [BASE_URL] [ROUNDS]

Each round fires one request at /, /slow and /error concurrently (the
/slow call takes 3-9 seconds), then scrapes /metrics and prints a short
summary of the status codes seen.  Leave it running while you build
Grafana panels or test alert rules.

Prerequisites:
  - The service must be running: observability-app  (or
    uvicorn observability_app.main:app --port 8080)
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections import Counter

import httpx

BASE_URL = "http://localhost:8080"
ROUNDS = 20
PATHS = ("/", "/slow", "/error")


async def _hit(client: httpx.AsyncClient, path: str) -> tuple[str, int]:
    resp = await client.get(path)
    return path, resp.status_code


async def main(base_url: str, rounds: int) -> None:
    print("Observability App Traffic Generator")
    print("=" * 50)
    print(f"Target: {base_url}")
    print(f"Rounds: {rounds}")
    print()

    results: Counter[tuple[str, int]] = Counter()
    start = time.monotonic()

    # /slow can take up to 9s; leave headroom.
    async with httpx.AsyncClient(base_url=base_url, timeout=15) as client:
        for i in range(rounds):
            for path, status in await asyncio.gather(*(_hit(client, p) for p in PATHS)):
                results[(path, status)] += 1
            print(f"  Round {i + 1}/{rounds} done")

        scrape = await client.get("/metrics")
        scrape.raise_for_status()

    elapsed = time.monotonic() - start

    print()
    print("Results")
    print("-" * 50)
    for (path, status), count in sorted(results.items()):
        print(f"  {path:<8} {status}  x{count}")
    print()
    series = [line for line in scrape.text.splitlines() if line.startswith("http_requests_total{")]
    print(f"/metrics reports {len(series)} http_requests_total series")
    print(f"Elapsed: {elapsed:.1f}s")


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else BASE_URL
    n = int(sys.argv[2]) if len(sys.argv) > 2 else ROUNDS
    try:
        asyncio.run(main(url, n))
    except httpx.HTTPError as exc:
        print(f"Request failed: {exc}")
        sys.exit(1)
