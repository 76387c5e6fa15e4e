"""Request guards for the public translation endpoints."""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict, deque
from typing import Deque, DefaultDict

from fastapi import HTTPException, Request

TRANSLATE_RATE_LIMIT = int(os.getenv("TRANSLATE_RATE_LIMIT", "60"))
TRANSLATE_RATE_WINDOW_SECONDS = int(os.getenv("TRANSLATE_RATE_WINDOW_SECONDS", "60"))

_RATE_LOCK = threading.Lock()
_RATE_BUCKETS: DefaultDict[str, Deque[float]] = defaultdict(deque)


def get_client_ip(request: Request) -> str:
    """Best effort extraction of the requester IP address."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_request(
    request: Request,
    *,
    scope: str,
    limit: int,
    window_seconds: int,
) -> None:
    """Apply an in-memory sliding window per client IP and scope."""

    identifier = f"{scope}:{get_client_ip(request)}"
    now = time.monotonic()
    with _RATE_LOCK:
        bucket = _RATE_BUCKETS[identifier]
        while bucket and now - bucket[0] > window_seconds:
            bucket.popleft()
        if len(bucket) >= limit:
            raise HTTPException(status_code=429, detail="Too many translation requests. Try again later.")
        bucket.append(now)


def reset_rate_limits() -> None:
    with _RATE_LOCK:
        _RATE_BUCKETS.clear()


async def limit_translation_requests(request: Request) -> None:
    """FastAPI dependency guarding endpoints that reach the AI provider."""

    rate_limit_request(
        request,
        scope="translate",
        limit=TRANSLATE_RATE_LIMIT,
        window_seconds=TRANSLATE_RATE_WINDOW_SECONDS,
    )


__all__ = ["get_client_ip", "limit_translation_requests", "rate_limit_request", "reset_rate_limits"]
