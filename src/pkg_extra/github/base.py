"""Ports: repository signals, file content, and markdown rendering."""

from __future__ import annotations

from typing import Protocol

from pkg_extra.models import PackageRecord, RepoInfo


class RepoInfoPort(Protocol):
    """Port for fetching repository signals from GitHub."""

    async def fetch_repo_info(self, repo: str) -> RepoInfo:
        """Fetch stars, parent stars and push/update times for ``owner/repo``."""
        ...


class ReadmeContentPort(Protocol):
    """Port for reading a file's raw text from a repository."""

    async def fetch_file_text(self, owner: str, repo: str, path: str) -> str:
        """Return the file text, or ``""`` when the path does not exist."""
        ...


class MarkdownRendererPort(Protocol):
    """Port for rendering readme markdown to HTML."""

    async def render(self, markdown: str, record: PackageRecord) -> str:
        """Render ``markdown`` in the context of the package's repository."""
        ...
