"""HTTP client for the image cache service."""

from __future__ import annotations

import logging
from urllib.parse import quote as urlquote

import httpx

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import MediaError
from pkg_extra.http import send_with_retry
from pkg_extra.models import ImageEntry, ImageQuery

logger = logging.getLogger(__name__)


def avatar_filename(username: str, size: int) -> str:
    """Stable file name for a cached GitHub avatar, e.g. ``avatar-octocat-48x48.png``."""
    return f"avatar-{urlquote(username, safe='')}-{size}x{size}.png"


class MediaClient:
    """Adapter for ImageCachePort; holds the httpx client."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str,
        timeout: float = 10.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._http = http_client
        self._images_url = f"{base_url.rstrip('/')}/images"
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def get_image(self, query: ImageQuery) -> ImageEntry | None:
        params = query.to_params()
        resp = await send_with_retry(
            lambda: self._http.get(self._images_url, params=params),
            target=self._images_url,
            timeout=self._timeout,
            retry=self._retry,
        )
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise MediaError(f"Image service returned HTTP {resp.status_code} for {query.image_url}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise MediaError(f"Invalid JSON from image service: {exc}") from exc
        if not isinstance(data, dict):
            return None
        return ImageEntry(
            available=bool(data.get("available")),
            filename=str(data.get("filename") or ""),
            updated_time=data.get("updatedTime"),
        )

    async def add_image(
        self,
        query: ImageQuery,
        *,
        duration: int,
        filename: str | None = None,
        force: bool = False,
    ) -> None:
        body: dict[str, object] = {**query.to_params(), "duration": duration, "force": force}
        if filename:
            body["filename"] = filename
        resp = await send_with_retry(
            lambda: self._http.post(self._images_url, json=body),
            target=self._images_url,
            timeout=self._timeout,
            retry=self._retry,
        )
        if resp.status_code not in (200, 201, 202):
            raise MediaError(f"Image service rejected {query.image_url}: HTTP {resp.status_code}")
        logger.debug("Queued image %s (%dx%d)", query.image_url, query.width, query.height)
