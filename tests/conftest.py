"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from pkg_extra.github import auth


@pytest.fixture(autouse=True)
def _isolate_github_auth(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset GitHub auth/rate-limit state and never shell out to `gh` during tests."""
    auth.reset_state()
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("PKG_EXTRA_CONFIG", raising=False)
    monkeypatch.setattr(auth, "_resolve_gh_cli_token", lambda: None)
    yield
    auth.reset_state()
