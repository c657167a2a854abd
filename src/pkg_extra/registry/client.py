"""HTTP client for the package registry (npm-compatible document API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import quote as urlquote

import httpx

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import MalformedDataError, NetworkError, PackageNotFoundError
from pkg_extra.http import send_with_retry
from pkg_extra.models import PackageMeta, VersionInfo

logger = logging.getLogger(__name__)

_ACCEPT_JSON = {"Accept": "application/json"}


def _encode_name(name: str) -> str:
    """URL-encode a package name, keeping a leading scope ``@`` readable."""
    return urlquote(name, safe="@")


@dataclass
class RegistryClient:
    """Async client for the registry document and download-count endpoints."""

    http: httpx.AsyncClient
    registry_url: str
    downloads_url: str
    timeout: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    async def get_package_meta(self, name: str) -> PackageMeta:
        """Fetch and parse ``<registry_url>/<name>``."""
        url = f"{self.registry_url.rstrip('/')}/{_encode_name(name)}"
        data = await self._get_json(url, name)
        if not isinstance(data, dict):
            raise MalformedDataError(f"Registry document for '{name}' is not an object")
        return parse_package_meta(name, data)

    async def get_monthly_downloads(self, name: str) -> int:
        """Fetch ``<downloads_url>/<name>``; a missing count reads as 0."""
        url = f"{self.downloads_url.rstrip('/')}/{_encode_name(name)}"
        data = await self._get_json(url, name)
        if not isinstance(data, dict):
            return 0
        try:
            return int(data.get("downloads") or 0)
        except (TypeError, ValueError):
            return 0

    async def _get_json(self, url: str, name: str) -> object:
        response = await send_with_retry(
            lambda: self.http.get(url, headers=_ACCEPT_JSON),
            target=url,
            timeout=self.timeout,
            retry=self.retry,
        )
        if response.status_code == 404:
            raise PackageNotFoundError(f"Package '{name}' not found in registry")
        if response.status_code != 200:
            raise NetworkError(f"Registry returned HTTP {response.status_code} for '{name}'")
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedDataError(f"Invalid JSON from registry for '{name}': {exc}") from exc


# ── Parsing helpers ──────────────────────────────────────────


def parse_package_meta(name: str, data: dict) -> PackageMeta:
    """Parse a raw registry document into a PackageMeta.

    Tolerant of missing fields. Version entries that are bare strings
    (e.g. ``"latest"``) are kept as markers so latest-version lookup can
    still find them; version entries whose ``dependencies`` is not a map
    keep ``dependencies=None`` for the resolver to report.
    """
    dist_tags_raw = data.get("dist-tags")
    dist_tags = (
        {str(k): str(v) for k, v in dist_tags_raw.items() if isinstance(v, str)}
        if isinstance(dist_tags_raw, dict)
        else {}
    )

    versions: dict[str, VersionInfo] = {}
    versions_raw = data.get("versions")
    if isinstance(versions_raw, dict):
        for version, entry in versions_raw.items():
            versions[str(version)] = _parse_version(str(version), entry)

    time_raw = data.get("time")
    time = (
        {str(k): str(v) for k, v in time_raw.items() if isinstance(v, str)}
        if isinstance(time_raw, dict)
        else {}
    )

    return PackageMeta(
        name=str(data.get("name") or name),
        dist_tags=dist_tags,
        versions=versions,
        time=time,
    )


def _parse_version(version: str, entry: object) -> VersionInfo:
    if isinstance(entry, str):
        return VersionInfo(version=version, marker=entry)
    if not isinstance(entry, dict):
        return VersionInfo(version=version, dependencies=None)

    deps_raw = entry.get("dependencies", {})
    dependencies: dict[str, str] | None
    if deps_raw is None:
        dependencies = {}
    elif isinstance(deps_raw, dict):
        dependencies = {str(k): str(v) for k, v in deps_raw.items()}
    else:
        dependencies = None

    unity = entry.get("unity")
    return VersionInfo(
        version=version,
        dependencies=dependencies,
        unity=unity if isinstance(unity, str) else "",
    )
