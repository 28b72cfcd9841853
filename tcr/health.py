from __future__ import annotations

import time
from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class ProbeResult:
    healthy: bool
    message: str
    latency_ms: float | None = None


def probe_peer(url: str, timeout_s: float = 2.0) -> ProbeResult:
    """GET a peer's health endpoint; healthy means 200 with {"status": "healthy"}."""
    start = time.perf_counter()

    def elapsed() -> float:
        return round((time.perf_counter() - start) * 1000.0, 2)

    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False) as client:
            resp = client.get(url)
    except (httpx.ConnectError, httpx.TimeoutException):
        return ProbeResult(False, "No response", elapsed())
    except httpx.HTTPError as e:
        return ProbeResult(False, f"Error: {type(e).__name__}: {e}", elapsed())

    latency = elapsed()
    if resp.status_code != 200:
        return ProbeResult(False, f"HTTP {resp.status_code}", latency)
    try:
        data = resp.json()
    except ValueError:
        return ProbeResult(False, "Invalid JSON", latency)
    if isinstance(data, dict) and data.get("status") == "healthy":
        return ProbeResult(True, "Healthy", latency)
    return ProbeResult(False, f"Unhealthy payload: {data!r}", latency)
