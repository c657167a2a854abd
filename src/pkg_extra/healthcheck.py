"""Signal a healthchecks.io-style endpoint when a job run completes."""

from __future__ import annotations

import logging

import httpx

from pkg_extra.errors import HealthCheckError

logger = logging.getLogger(__name__)


async def ping_health_check(
    http_client: httpx.AsyncClient,
    base_url: str,
    check_id: str,
    *,
    timeout: float = 10.0,
) -> None:
    """GET ``<base_url>/<check_id>``. An empty id is a no-op.

    Raises:
        HealthCheckError: On transport failure or a non-2xx answer.
    """
    if not check_id:
        logger.debug("No health check id configured; skipping ping")
        return
    url = f"{base_url.rstrip('/')}/{check_id}"
    try:
        resp = await http_client.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        raise HealthCheckError(f"Health check ping to {url} failed: {exc}") from exc
    if not resp.is_success:
        raise HealthCheckError(f"Health check ping to {url} returned HTTP {resp.status_code}")
    logger.info("Health check %s signalled", check_id)
