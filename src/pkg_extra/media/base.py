"""Port: image cache service."""

from __future__ import annotations

from typing import Protocol

from pkg_extra.models import ImageEntry, ImageQuery


class ImageCachePort(Protocol):
    """Port for the service that downloads, transforms and caches images."""

    async def get_image(self, query: ImageQuery) -> ImageEntry | None:
        """Look up a cached image; None when the service has no entry."""
        ...

    async def add_image(
        self,
        query: ImageQuery,
        *,
        duration: int,
        filename: str | None = None,
        force: bool = False,
    ) -> None:
        """Ask the service to (re)cache an image for ``duration`` seconds."""
        ...
