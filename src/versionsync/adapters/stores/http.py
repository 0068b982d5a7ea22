"""
HTTP helpers shared by the store clients.

Retry delays use exponential backoff with jitter, capped at ``max_delay``.
A server-provided ``Retry-After`` takes precedence over the computed delay.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Any


# Status codes that warrant a retry
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def calculate_delay(
    attempt: int,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_after: float | None = None,
) -> float:
    """
    Calculate the delay before the next retry.

    Args:
        attempt: Zero-based attempt number
        initial_delay: Delay for the first retry
        max_delay: Upper bound for any delay
        backoff_factor: Multiplier applied per attempt
        jitter: Random jitter factor (0.1 = +/-10%)
        retry_after: Server-requested delay, if any

    Returns:
        Delay in seconds
    """
    if retry_after is not None:
        base = float(retry_after)
    else:
        base = initial_delay * (backoff_factor**attempt)
    base = min(base, max_delay)

    if jitter:
        base += base * jitter * random.uniform(-1, 1)
    return max(0.0, base)


def get_retry_after(response: Any) -> float | None:
    """
    Read the ``Retry-After`` header (seconds form) from a response or header mapping.

    Returns None when absent or not numeric.
    """
    headers: Mapping[str, str] | None
    if isinstance(response, Mapping):
        headers = response
    else:
        headers = getattr(response, "headers", None)
    if not headers:
        return None

    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
