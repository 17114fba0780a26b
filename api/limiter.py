"""
api/limiter.py -- Shared slowapi rate limiter instance.

The limit is enforced by the access-control middleware in api/main.py
through check_request_limit(), not by SlowAPIMiddleware. SlowAPIMiddleware
only limits requests it can resolve to a route endpoint, which leaves
unrouted paths (still gated, still hashing passwords) unthrottled. Counting
in the gate covers every gated path and runs before any bcrypt work.

Using a single shared instance ensures every request shares the same
in-memory counter store. Tests call limiter.reset() between cases.
"""

from __future__ import annotations

import time

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=_settings.rate_limit_enabled,
)

REQUEST_LIMIT = parse(_settings.request_rate_limit)


def check_request_limit(request: Request) -> int | None:
    """Count one request against the caller's budget.

    Returns None while the client is within REQUEST_LIMIT, otherwise the
    number of seconds until its window resets (for Retry-After).
    """
    if not limiter.enabled:
        return None
    key = get_remote_address(request)
    if limiter.limiter.hit(REQUEST_LIMIT, key):
        return None
    reset_at, _remaining = limiter.limiter.get_window_stats(REQUEST_LIMIT, key)
    return max(1, int(reset_at - time.time()) + 1)
