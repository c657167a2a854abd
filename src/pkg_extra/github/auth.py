"""GitHub auth token resolution and rate-limit bookkeeping shared by the GitHub adapters."""

from __future__ import annotations

import logging
import subprocess
import time

import httpx

logger = logging.getLogger(__name__)

# ─── Runtime state ─────────────────────────────────────────

_rate_limit_reset: float = 0.0
_gh_cli_resolved: bool = False
_gh_cli_token: str | None = None
_logged_rate_limit_hint: bool = False


def reset_state() -> None:
    """Clear auth/rate-limit runtime state (primarily for tests)."""
    global _gh_cli_resolved
    global _gh_cli_token
    global _logged_rate_limit_hint
    global _rate_limit_reset

    _rate_limit_reset = 0.0
    _gh_cli_resolved = False
    _gh_cli_token = None
    _logged_rate_limit_hint = False


# ─── Rate limit detection ──────────────────────────────────


def is_rate_limited() -> bool:
    return time.monotonic() < _rate_limit_reset


def check_rate_limit(resp: httpx.Response) -> None:
    """Update the local rate-limit gate and warn once when it closes."""
    global _logged_rate_limit_hint
    global _rate_limit_reset

    remaining = resp.headers.get("X-RateLimit-Remaining")
    if remaining is None:
        return
    try:
        remaining_value = int(remaining)
    except ValueError:
        return
    if remaining_value != 0:
        return

    try:
        reset_epoch = int(resp.headers.get("X-RateLimit-Reset", "0"))
    except ValueError:
        reset_epoch = 0
    _rate_limit_reset = time.monotonic() + max(0, reset_epoch - time.time())

    if not _logged_rate_limit_hint:
        logger.warning("GitHub API rate limit exhausted; GitHub steps are skipped until reset.")
        _logged_rate_limit_hint = True


# ─── Auth resolution ───────────────────────────────────────


def resolve_github_token(configured: str) -> str | None:
    """Configured token first (settings or ``GITHUB_TOKEN``), then ``gh auth token``."""
    global _gh_cli_resolved
    global _gh_cli_token

    if configured:
        return configured
    if not _gh_cli_resolved:
        _gh_cli_resolved = True
        _gh_cli_token = _resolve_gh_cli_token()
        if _gh_cli_token:
            logger.info("Using GitHub token from `gh auth token` fallback.")
        else:
            logger.info("No GitHub auth token found; requests are unauthenticated.")
    return _gh_cli_token


def _resolve_gh_cli_token() -> str | None:
    """Try to read a token from local GitHub CLI auth context."""
    try:
        completed = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=2,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return None

    if completed.returncode != 0:
        return None
    token = completed.stdout.strip()
    return token or None


def github_headers(token: str | None, accept: str = "application/vnd.github+json") -> dict[str, str]:
    headers = {"Accept": accept}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers
