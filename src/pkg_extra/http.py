"""Shared HTTP plumbing: client construction, per-call timeout, and retry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from pkg_extra.config import RetryPolicy, Settings
from pkg_extra.errors import NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = "pkg-extra"


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Build the one AsyncClient shared by every adapter during a run."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        limits=httpx.Limits(max_connections=5, max_keepalive_connections=5),
    )


async def send_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    target: str,
    timeout: float,
    retry: RetryPolicy,
) -> httpx.Response:
    """Await ``send()`` under a hard timeout, retrying transport failures.

    The whole round-trip is cancelled once ``timeout`` seconds pass.
    Timeouts and transport errors are retried with exponential backoff
    up to ``retry.max_attempts`` attempts in total. HTTP status codes are
    not inspected here, so a 404 is returned to the caller untouched.

    Raises:
        NetworkError: When the last attempt still fails or times out.
    """
    last_exc: Exception | None = None

    for attempt in range(1, retry.max_attempts + 1):
        try:
            return await asyncio.wait_for(send(), timeout=timeout)
        except (TimeoutError, httpx.TimeoutException) as exc:
            last_exc = exc
            reason = f"timed out after {timeout:g}s"
        except httpx.HTTPError as exc:
            last_exc = exc
            reason = str(exc) or type(exc).__name__

        if attempt == retry.max_attempts:
            raise NetworkError(f"Request to {target} failed: {reason}") from last_exc

        delay = retry.base_delay * (2 ** (attempt - 1))
        logger.warning(
            "Attempt %d/%d for %s failed (%s), retrying in %.1fs",
            attempt,
            retry.max_attempts,
            target,
            reason,
            delay,
        )
        await asyncio.sleep(delay)

    raise NetworkError(f"Request to {target} failed")  # pragma: no cover
