"""Render readme markdown to HTML with GitHub's markdown API."""

from __future__ import annotations

import httpx

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import GitHubError
from pkg_extra.github.auth import github_headers, resolve_github_token
from pkg_extra.http import send_with_retry
from pkg_extra.models import PackageRecord


class GitHubMarkdownRenderer:
    """Adapter for MarkdownRendererPort.

    Renders in ``gfm`` mode with the package repository as context, so
    relative issue and user references resolve against that repository.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_url: str = "https://api.github.com",
        token: str = "",
        timeout: float = 10.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._http = http_client
        self._url = f"{api_url.rstrip('/')}/markdown"
        self._token = token
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def render(self, markdown: str, record: PackageRecord) -> str:
        if not markdown:
            return ""
        body: dict[str, str] = {"text": markdown, "mode": "gfm"}
        if record.repo:
            body["context"] = record.repo
        headers = github_headers(resolve_github_token(self._token))
        resp = await send_with_retry(
            lambda: self._http.post(self._url, json=body, headers=headers),
            target=self._url,
            timeout=self._timeout,
            retry=self._retry,
        )
        if resp.status_code != 200:
            raise GitHubError(f"Markdown render returned HTTP {resp.status_code} for {record.name}")
        return resp.text
