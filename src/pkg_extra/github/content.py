"""Fetch raw file text from a GitHub repository through the GraphQL API."""

from __future__ import annotations

import logging

import httpx

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import GitHubError
from pkg_extra.github.auth import check_rate_limit, github_headers, is_rate_limited, resolve_github_token
from pkg_extra.http import send_with_retry

logger = logging.getLogger(__name__)

# ``expression`` is a git revision path such as ``master:README.md``.
FILE_CONTENT_QUERY = """
query fileContent($owner: String!, $name: String!, $expression: String!) {
  repository(owner: $owner, name: $name) {
    object(expression: $expression) {
      ... on Blob {
        text
      }
    }
  }
}
"""


def extract_blob_text(payload: dict) -> str:
    """Pull ``repository.object.text`` out of a GraphQL response, or ``""``."""
    data = payload.get("data") or {}
    repository = data.get("repository") or {}
    blob = repository.get("object") or {}
    text = blob.get("text")
    return text if isinstance(text, str) else ""


class DefaultReadmeContentClient:
    """Adapter for ReadmeContentPort; holds the httpx client."""

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
        self._graphql_url = f"{api_url.rstrip('/')}/graphql"
        self._token = token
        self._timeout = timeout
        self._retry = retry or RetryPolicy()

    async def fetch_file_text(self, owner: str, repo: str, path: str) -> str:
        """Return the text of ``path`` in ``owner/repo``; ``""`` if it does not exist.

        Raises:
            GitHubError: Without a token, when rate limited, or when
                GitHub answers with a non-200 status or GraphQL errors.
            NetworkError: On transport failure or timeout.
        """
        token = resolve_github_token(self._token)
        if not token:
            raise GitHubError("The GitHub GraphQL API requires an auth token")
        if is_rate_limited():
            raise GitHubError("GitHub API rate limit exhausted")

        body = {
            "query": FILE_CONTENT_QUERY,
            "variables": {"owner": owner, "name": repo, "expression": path},
        }
        headers = github_headers(token, accept="application/json")
        resp = await send_with_retry(
            lambda: self._http.post(self._graphql_url, json=body, headers=headers),
            target=self._graphql_url,
            timeout=self._timeout,
            retry=self._retry,
        )
        check_rate_limit(resp)
        if resp.status_code != 200:
            raise GitHubError(f"GitHub GraphQL returned HTTP {resp.status_code} for {owner}/{repo}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise GitHubError(f"Invalid JSON from GitHub GraphQL: {exc}") from exc
        if not isinstance(payload, dict):
            raise GitHubError("Unexpected GitHub GraphQL payload")
        if payload.get("errors") and not payload.get("data"):
            messages = "; ".join(str(e.get("message", e)) for e in payload["errors"])
            raise GitHubError(f"GitHub GraphQL error for {owner}/{repo}: {messages}")
        return extract_blob_text(payload)
