"""Refresh derived metadata for packages, one package and one step at a time.

Each step catches and logs its own failures, so a broken step never stops
the steps after it and a broken package never stops the batch. Store
writes are per field; a step that fails halfway leaves earlier fields
updated and later ones stale.
"""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from pkg_extra.catalog import PackageCatalog
from pkg_extra.config import Settings
from pkg_extra.errors import MalformedDataError, PkgExtraError
from pkg_extra.github.base import MarkdownRendererPort, ReadmeContentPort, RepoInfoPort
from pkg_extra.media.base import ImageCachePort
from pkg_extra.media.client import avatar_filename
from pkg_extra.models import PackageRecord
from pkg_extra.registry.base import RegistryClientPort
from pkg_extra.scopes.base import ScopeResolverPort
from pkg_extra.scopes.resolver import latest_version
from pkg_extra.store.base import MetadataStorePort

logger = logging.getLogger(__name__)

README_CACHE_KEY_VERSION = "v0"

# Failures steps expect from their collaborators. Anything else is still
# absorbed by the step, but logged with its traceback.
_EXPECTED_ERRORS = (PkgExtraError, httpx.HTTPError)


def readme_cache_key(readme_path: str, pushed_time: int | None) -> str:
    """Composite key deciding whether a stored readme is still current."""
    return f"{README_CACHE_KEY_VERSION}:{readme_path}:{pushed_time or 0}"


def _unexpected(exc: Exception) -> bool:
    return not isinstance(exc, _EXPECTED_ERRORS)


def _time_to_epoch_ms(value: str | None) -> int:
    if not value:
        return 0
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return 0


class PackageRefresher:
    """Runs the seven refresh steps for one package."""

    def __init__(
        self,
        *,
        settings: Settings,
        registry: RegistryClientPort,
        store: MetadataStorePort,
        scope_resolver: ScopeResolverPort,
        repo_info: RepoInfoPort,
        readme_content: ReadmeContentPort,
        markdown: MarkdownRendererPort,
        media: ImageCachePort,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._store = store
        self._scope_resolver = scope_resolver
        self._repo_info = repo_info
        self._readme_content = readme_content
        self._markdown = markdown
        self._media = media

    async def refresh(self, record: PackageRecord, *, force: bool = False) -> None:
        await self.fetch_package_info(record.name)
        await self.fetch_package_scopes(record.name)
        await self.fetch_repo_info(record)
        await self.fetch_readme(record)
        await self.cache_image(record, force=force)
        await self.cache_avatar_image(record, force=force)
        await self.fetch_install_count(record.name)

    # ── Registry info ────────────────────────────────────────

    async def fetch_package_info(self, name: str) -> None:
        """Store the latest version, its publish time, and its minimum editor version."""
        logger.info("fetch_package_info pkg=%s", name)
        try:
            meta = await self._registry.get_package_meta(name)
            version = latest_version(meta)
            info = meta.versions.get(version) if version else None
            if info is None:
                raise MalformedDataError(f"no latest version entry for {name}")
            self._store.set_unity_version(name, info.unity)
            self._store.set_updated_time(name, _time_to_epoch_ms(meta.time.get(version)))
            self._store.set_version(name, version)
        except Exception as exc:
            logger.error(
                "fetch package info error pkg=%s: %s", name, exc, exc_info=_unexpected(exc)
            )

    async def fetch_package_scopes(self, name: str) -> None:
        logger.info("fetch_package_scopes pkg=%s", name)
        try:
            scopes = await self._scope_resolver.resolve_scopes(name)
            logger.debug("Resolved %d scopes for pkg=%s", len(scopes), name)
        except Exception as exc:
            logger.error(
                "fetch package scopes error pkg=%s: %s", name, exc, exc_info=_unexpected(exc)
            )

    async def fetch_install_count(self, name: str) -> None:
        logger.info("fetch_install_count pkg=%s", name)
        try:
            count = await self._registry.get_monthly_downloads(name)
            self._store.set_monthly_downloads(name, count)
        except Exception as exc:
            logger.error(
                "fetch package install count error pkg=%s: %s", name, exc, exc_info=_unexpected(exc)
            )

    # ── Repository info ──────────────────────────────────────

    async def fetch_repo_info(self, record: PackageRecord) -> None:
        """Store stars, parent stars (forks only) and push/update times."""
        name = record.name
        logger.info("fetch_repo_info pkg=%s", name)
        try:
            info = await self._repo_info.fetch_repo_info(record.repo)
            self._store.set_stars(name, info.stars)
            if info.parent_stars is not None:
                self._store.set_parent_stars(name, info.parent_stars)
            if info.pushed_time:
                self._store.set_repo_pushed_time(name, info.pushed_time)
            if info.updated_time:
                self._store.set_repo_updated_time(name, info.updated_time)
        except Exception as exc:
            logger.error("fetch stars error pkg=%s: %s", name, exc, exc_info=_unexpected(exc))

    # ── Readme ───────────────────────────────────────────────

    async def fetch_readme(self, record: PackageRecord) -> None:
        logger.info("fetch_readme pkg=%s", record.name)
        for lang in self._settings.readme_languages:
            readme_path = record.readme_path(lang)
            if readme_path:
                await self.fetch_readme_for_lang(record, lang, readme_path)

    async def fetch_readme_for_lang(self, record: PackageRecord, lang: str, readme_path: str) -> None:
        """Fetch, store and render one readme unless its cache key is unchanged."""
        name = record.name
        logger.info("fetch_readme_for_lang pkg=%s lang=%s path=%s", name, lang, readme_path)
        try:
            cache_key = readme_cache_key(readme_path, self._store.get_repo_pushed_time(name))
            if cache_key == self._store.get_readme_cache_key(name, lang):
                logger.info(
                    "skip fetch_readme_for_lang because the cache is available pkg=%s lang=%s",
                    name,
                    lang,
                )
                return
            owner, _, repo = record.repo.partition("/")
            text = await self._readme_content.fetch_file_text(owner, repo, readme_path)
            self._store.set_readme(name, text, lang)
            html = await self._markdown.render(text, record)
            self._store.set_readme_html(name, html, lang)
            self._store.set_readme_cache_key(name, lang, cache_key)
        except Exception as exc:
            logger.error(
                "fetch readme error pkg=%s lang=%s path=%s: %s",
                name,
                lang,
                readme_path,
                exc,
                exc_info=_unexpected(exc),
            )

    # ── Images ───────────────────────────────────────────────

    async def cache_image(self, record: PackageRecord, *, force: bool = False) -> None:
        name = record.name
        logger.info("cache_image pkg=%s", name)
        try:
            query = self._store.get_image_query_for_package(record, self._settings.image)
            if query is None:
                return
            entry = await self._media.get_image(query)
            if not force and entry is not None and entry.available:
                logger.info("cache_image cache is available pkg=%s", name)
                return
            await self._media.add_image(query, duration=self._settings.image.duration, force=force)
        except Exception as exc:
            logger.error("cache image error pkg=%s: %s", name, exc, exc_info=_unexpected(exc))

    async def cache_avatar_image(self, record: PackageRecord, *, force: bool = False) -> None:
        logger.info("cache_avatar_image pkg=%s", record.name)
        for username in (record.owner, record.parent_owner, record.hunter):
            if username:
                await self.cache_avatar_image_for_github_user(username, force=force)

    async def cache_avatar_image_for_github_user(self, username: str, *, force: bool = False) -> None:
        """Cache every configured avatar size; each size fails independently."""
        for size_name, entry in self._settings.avatar.items():
            size = entry.size
            logger.info(
                "cache_avatar_image_for_github_user username=%s size=%s (%dx%d)",
                username,
                size_name,
                size,
                size,
            )
            try:
                query = self._store.get_image_query_for_github_user(username, size)
                if query is None:
                    return
                image = await self._media.get_image(query)
                if not force and image is not None and image.available:
                    logger.info(
                        "cache_avatar_image_for_github_user cache is available username=%s size=%s",
                        username,
                        size_name,
                    )
                    continue
                await self._media.add_image(
                    query,
                    duration=entry.duration,
                    filename=avatar_filename(username, size),
                    force=force,
                )
            except Exception as exc:
                logger.error(
                    "cache avatar image error username=%s size=%s: %s",
                    username,
                    size_name,
                    exc,
                    exc_info=_unexpected(exc),
                )


async def fetch_extra_data(
    names: list[str] | None,
    *,
    catalog: PackageCatalog,
    refresher: PackageRefresher,
    force: bool = False,
) -> int:
    """Refresh every named package in order; returns how many were processed.

    Unknown or unreadable packages are logged and skipped, and a package
    whose refresh raises is logged and counted as not processed.
    """
    logger.info("fetch_extra_data count=%d force=%s", len(names or []), force)
    processed = 0
    for name in names or []:
        try:
            if not catalog.package_exists(name):
                logger.error("package doesn't exist pkg=%s", name)
                continue
            record = catalog.load_package(name)
        except Exception as exc:
            logger.error("load package error pkg=%s: %s", name, exc, exc_info=_unexpected(exc))
            continue
        try:
            await refresher.refresh(record, force=force)
        except Exception:
            logger.exception("refresh package error pkg=%s", name)
            continue
        processed += 1
    return processed
