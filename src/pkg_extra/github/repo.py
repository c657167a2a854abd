"""Fetch repository signals (stars, push time) from the GitHub REST API."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import GitHubError
from pkg_extra.github.auth import check_rate_limit, github_headers, is_rate_limited, resolve_github_token
from pkg_extra.http import send_with_retry
from pkg_extra.models import RepoInfo

logger = logging.getLogger(__name__)


def iso_to_epoch_ms(value: str | None) -> int | None:
    """Convert a GitHub ISO 8601 timestamp (``2024-01-02T03:04:05Z``) to epoch ms."""
    if not value:
        return None
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return None


def parse_repo_info(data: dict) -> RepoInfo:
    """Build RepoInfo from a ``GET /repos/{owner}/{repo}`` payload."""
    parent = data.get("parent")
    parent_stars = None
    if isinstance(parent, dict):
        parent_stars = parent.get("stargazers_count") or 0
    return RepoInfo(
        stars=data.get("stargazers_count") or 0,
        parent_stars=parent_stars,
        pushed_time=iso_to_epoch_ms(data.get("pushed_at")),
        updated_time=iso_to_epoch_ms(data.get("updated_at")),
    )


class DefaultRepoInfoClient:
    """Adapter for RepoInfoPort; holds the httpx client."""

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
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def fetch_repo_info(self, repo: str) -> RepoInfo:
        """Fetch signals for ``owner/repo``.

        Raises:
            GitHubError: If the repo reference is invalid, the API is
                rate limited, or it answers with a non-200 status.
            NetworkError: On transport failure or timeout.
        """
        if repo.count("/") != 1 or not all(repo.split("/")):
            raise GitHubError(f"Invalid repository reference '{repo}'")
        if is_rate_limited():
            raise GitHubError("GitHub API rate limit exhausted")

        url = f"{self._api_url}/repos/{repo}"
        headers = github_headers(resolve_github_token(self._token))
        resp = await send_with_retry(
            lambda: self._http.get(url, headers=headers),
            target=url,
            timeout=self._timeout,
            retry=self._retry,
        )
        check_rate_limit(resp)
        if resp.status_code != 200:
            raise GitHubError(f"GitHub returned HTTP {resp.status_code} for {repo}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise GitHubError(f"Invalid JSON from GitHub for {repo}: {exc}") from exc
        if not isinstance(data, dict):
            raise GitHubError(f"Unexpected GitHub payload for {repo}")
        return parse_repo_info(data)
