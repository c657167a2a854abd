"""Port: package registry client."""

from __future__ import annotations

from typing import Protocol

from pkg_extra.models import PackageMeta


class RegistryClientPort(Protocol):
    """Port for querying the package registry."""

    async def get_package_meta(self, name: str) -> PackageMeta:
        """Fetch the full package document.

        Raises PackageNotFoundError when the registry has no such package,
        NetworkError for transport failures and MalformedDataError for a
        document that cannot be parsed.
        """
        ...

    async def get_monthly_downloads(self, name: str) -> int:
        """Fetch the install count over the last month."""
        ...
