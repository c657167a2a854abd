"""Composition root: wires settings, the shared HTTP client, and every adapter."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from pkg_extra.catalog import PackageCatalog
from pkg_extra.config import Settings
from pkg_extra.github.content import DefaultReadmeContentClient
from pkg_extra.github.markdown import GitHubMarkdownRenderer
from pkg_extra.github.repo import DefaultRepoInfoClient
from pkg_extra.http import create_http_client
from pkg_extra.media.client import MediaClient
from pkg_extra.refresh import PackageRefresher
from pkg_extra.registry.client import RegistryClient
from pkg_extra.scopes.resolver import ScopeResolver
from pkg_extra.store.json_store import JsonMetadataStore


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state for one job run."""

    settings: Settings
    http_client: httpx.AsyncClient
    catalog: PackageCatalog
    store: JsonMetadataStore
    refresher: PackageRefresher


def build_context(settings: Settings, http_client: httpx.AsyncClient) -> AppContext:
    """Build every adapter around an existing client."""
    timeout = settings.request_timeout
    retry = settings.retry
    github = {
        "api_url": settings.github_api_url,
        "token": settings.github_token,
        "timeout": timeout,
        "retry": retry,
    }

    registry = RegistryClient(
        http_client,
        registry_url=settings.registry_url,
        downloads_url=settings.downloads_url,
        timeout=timeout,
        retry=retry,
    )
    store = JsonMetadataStore(settings.store_dir)
    refresher = PackageRefresher(
        settings=settings,
        registry=registry,
        store=store,
        scope_resolver=ScopeResolver(
            registry,
            store,
            module_namespace_pattern=settings.module_namespace_pattern,
        ),
        repo_info=DefaultRepoInfoClient(http_client, **github),
        readme_content=DefaultReadmeContentClient(http_client, **github),
        markdown=GitHubMarkdownRenderer(http_client, **github),
        media=MediaClient(http_client, base_url=settings.media_url, timeout=timeout, retry=retry),
    )
    return AppContext(
        settings=settings,
        http_client=http_client,
        catalog=PackageCatalog(settings.catalog_dir, languages=settings.readme_languages),
        store=store,
        refresher=refresher,
    )


@asynccontextmanager
async def app_context(settings: Settings) -> AsyncIterator[AppContext]:
    """Manage the shared HTTP client lifecycle for one run."""
    async with create_http_client(settings) as http_client:
        yield build_context(settings, http_client)
