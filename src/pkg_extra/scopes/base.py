"""Port: dependency scope resolution."""

from __future__ import annotations

from typing import Protocol


class ScopeResolverPort(Protocol):
    """Port for computing and persisting a package's dependency closure."""

    async def resolve_scopes(self, root_name: str) -> list[str]:
        """Resolve every package reachable from ``root_name`` and store the sorted list."""
        ...
