"""Port: per-package metadata store."""

from __future__ import annotations

from typing import Protocol

from pkg_extra.config import ImageSettings
from pkg_extra.models import ImageQuery, PackageRecord


class MetadataStorePort(Protocol):
    """Port for the key/value store holding derived package metadata.

    Writes raise PersistenceError when the backing storage fails.
    """

    def set_scopes(self, name: str, scopes: list[str]) -> None: ...

    def get_scopes(self, name: str) -> list[str]: ...

    def set_version(self, name: str, version: str) -> None: ...

    def set_updated_time(self, name: str, time: int) -> None: ...

    def set_unity_version(self, name: str, unity_version: str) -> None: ...

    def set_stars(self, name: str, stars: int) -> None: ...

    def set_parent_stars(self, name: str, stars: int) -> None: ...

    def set_repo_pushed_time(self, name: str, time: int) -> None: ...

    def get_repo_pushed_time(self, name: str) -> int: ...

    def set_repo_updated_time(self, name: str, time: int) -> None: ...

    def set_readme(self, name: str, text: str, lang: str) -> None: ...

    def set_readme_html(self, name: str, html: str, lang: str) -> None: ...

    def set_readme_cache_key(self, name: str, lang: str, key: str) -> None: ...

    def get_readme_cache_key(self, name: str, lang: str) -> str: ...

    def set_monthly_downloads(self, name: str, count: int) -> None: ...

    def get_image_query_for_package(
        self, record: PackageRecord, image: ImageSettings
    ) -> ImageQuery | None:
        """Build the image cache lookup for a package's cover image, if it has one."""
        ...

    def get_image_query_for_github_user(self, username: str, size: int) -> ImageQuery | None:
        """Build the image cache lookup for a GitHub user's avatar."""
        ...
