"""JSON-file backed metadata store with atomic, locked writes.

One document per package under the store directory::

    <store_dir>/com.example.pkg.json
    {
      "store_version": 1,
      "name": "com.example.pkg",
      "fields": {"scopes": [...], "ver": "1.2.0", ...}
    }

Every setter is a read-modify-write of one field of one package under a
per-file threading lock and an ``fcntl`` file lock, so concurrent writers
are last-writer-wins per field and never lose each other's other fields.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from urllib.parse import quote as urlquote

from pkg_extra.config import ImageSettings
from pkg_extra.errors import PersistenceError
from pkg_extra.models import ImageQuery, PackageRecord

logger = logging.getLogger(__name__)

_STORE_VERSION = 1
DEFAULT_LANG = "en-US"
_UNITY_VERSION_RE = re.compile(r"^[0-9]{4}\.[0-9]")


class PropKeys:
    """Field names used inside each package entry."""

    scopes = "scopes"
    version = "ver"
    updated_time = "updatedTime"
    unity_version = "unityVersion"
    stars = "stars"
    parent_stars = "pstars"
    repo_pushed_time = "repoPushedTime"
    repo_updated_time = "repoUpdatedTime"
    readme = "readme"
    readme_html = "readmeHtml"
    readme_cache_key = "readmeCacheKey"
    monthly_downloads = "monthlyDownloads"


def prop_key_for_lang(key: str, lang: str) -> str:
    """Per-language field name: ``readme`` for en-US, ``readme_zhCN`` for zh-CN."""
    if lang == DEFAULT_LANG:
        return key
    return f"{key}_{lang.replace('-', '')}"


def is_valid_unity_version(value: str) -> bool:
    """True for editor versions shaped like ``2019.4`` (``YYYY.N`` prefix)."""
    return bool(_UNITY_VERSION_RE.match(value or ""))


_path_locks: dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _get_path_lock(path: Path) -> threading.Lock:
    """Get or create a per-path threading lock for in-process concurrency."""
    key = str(path.resolve())
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.Lock()
        return _path_locks[key]


class JsonMetadataStore:
    """Adapter for MetadataStorePort backed by one JSON document per package."""

    def __init__(self, store_dir: Path | str) -> None:
        self._dir = Path(store_dir)

    @property
    def store_dir(self) -> Path:
        return self._dir

    def path_for(self, name: str) -> Path:
        """File holding ``name``; scoped names keep ``/`` out of the file name."""
        return self._dir / f"{urlquote(name, safe='@')}.json"

    # ── Scopes and registry info ─────────────────────────────

    def set_scopes(self, name: str, scopes: list[str]) -> None:
        self._set(name, PropKeys.scopes, list(scopes))

    def get_scopes(self, name: str) -> list[str]:
        return list(self._get(name, PropKeys.scopes, []))

    def set_version(self, name: str, version: str) -> None:
        self._set(name, PropKeys.version, version)

    def get_version(self, name: str) -> str:
        return self._get(name, PropKeys.version, "")

    def set_updated_time(self, name: str, time: int) -> None:
        self._set(name, PropKeys.updated_time, int(time))

    def get_updated_time(self, name: str) -> int:
        return self._get(name, PropKeys.updated_time, 0)

    def set_unity_version(self, name: str, unity_version: str) -> None:
        """Store the minimum editor version, or ``""`` if it is not ``YYYY.N``-shaped."""
        value = unity_version if is_valid_unity_version(unity_version) else ""
        self._set(name, PropKeys.unity_version, value)

    def get_unity_version(self, name: str) -> str:
        return self._get(name, PropKeys.unity_version, "")

    def set_monthly_downloads(self, name: str, count: int) -> None:
        self._set(name, PropKeys.monthly_downloads, int(count))

    def get_monthly_downloads(self, name: str) -> int:
        return self._get(name, PropKeys.monthly_downloads, 0)

    # ── Repository info ──────────────────────────────────────

    def set_stars(self, name: str, stars: int) -> None:
        self._set(name, PropKeys.stars, int(stars))

    def get_stars(self, name: str) -> int:
        return self._get(name, PropKeys.stars, 0)

    def set_parent_stars(self, name: str, stars: int) -> None:
        self._set(name, PropKeys.parent_stars, int(stars))

    def get_parent_stars(self, name: str) -> int:
        return self._get(name, PropKeys.parent_stars, 0)

    def set_repo_pushed_time(self, name: str, time: int) -> None:
        self._set(name, PropKeys.repo_pushed_time, int(time))

    def get_repo_pushed_time(self, name: str) -> int:
        return self._get(name, PropKeys.repo_pushed_time, 0)

    def set_repo_updated_time(self, name: str, time: int) -> None:
        self._set(name, PropKeys.repo_updated_time, int(time))

    def get_repo_updated_time(self, name: str) -> int:
        return self._get(name, PropKeys.repo_updated_time, 0)

    # ── Readme ───────────────────────────────────────────────

    def set_readme(self, name: str, text: str, lang: str = DEFAULT_LANG) -> None:
        self._set(name, prop_key_for_lang(PropKeys.readme, lang), text)

    def get_readme(self, name: str, lang: str = DEFAULT_LANG) -> str:
        return self._get(name, prop_key_for_lang(PropKeys.readme, lang), "")

    def set_readme_html(self, name: str, html: str, lang: str = DEFAULT_LANG) -> None:
        self._set(name, prop_key_for_lang(PropKeys.readme_html, lang), html)

    def get_readme_html(self, name: str, lang: str = DEFAULT_LANG) -> str:
        return self._get(name, prop_key_for_lang(PropKeys.readme_html, lang), "")

    def set_readme_cache_key(self, name: str, lang: str, key: str) -> None:
        self._set(name, prop_key_for_lang(PropKeys.readme_cache_key, lang), key)

    def get_readme_cache_key(self, name: str, lang: str) -> str:
        return self._get(name, prop_key_for_lang(PropKeys.readme_cache_key, lang), "")

    # ── Image queries ────────────────────────────────────────

    def get_image_query_for_package(
        self, record: PackageRecord, image: ImageSettings
    ) -> ImageQuery | None:
        if not record.image:
            return None
        return ImageQuery(
            image_url=record.image,
            width=image.width,
            height=image.height,
            fit=image.fit,
        )

    def get_image_query_for_github_user(self, username: str, size: int) -> ImageQuery | None:
        if not username:
            return None
        return ImageQuery(
            image_url=f"https://github.com/{urlquote(username)}.png?size={size}",
            width=size,
            height=size,
            fit="cover",
        )

    # ── Storage ──────────────────────────────────────────────

    def entry(self, name: str) -> dict:
        """Return a copy of every stored field for ``name``."""
        return dict(self._read(self.path_for(name)))

    def _get(self, name: str, key: str, default):
        return self._read(self.path_for(name)).get(key, default)

    def _set(self, name: str, key: str, value: object) -> None:
        path = self.path_for(name)
        lock = _get_path_lock(path)
        with lock:
            lock_file_path = path.with_name(f".{path.name}.lck")
            try:
                lock_file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(lock_file_path, "w") as lock_fd:
                    fcntl.flock(lock_fd, fcntl.LOCK_EX)
                    try:
                        fields = self._read(path)
                        fields[key] = value
                        self._atomic_write(path, name, fields)
                    finally:
                        fcntl.flock(lock_fd, fcntl.LOCK_UN)
            except OSError as exc:
                raise PersistenceError(f"Failed to lock store file {path}: {exc}") from exc
        logger.debug("Stored %s for %s", key, name)

    def _read(self, path: Path) -> dict:
        if not path.exists():
            return {}
        try:
            text = path.read_text(encoding="utf-8")
            if not text.strip():
                return {}
            data = json.loads(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read store file {path}: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("fields", {}), dict):
            raise PersistenceError(f"Invalid store format in {path}")
        return data.get("fields", {})

    def _atomic_write(self, path: Path, name: str, fields: dict) -> None:
        """Write one package document atomically via tempfile + os.replace."""
        data = {"store_version": _STORE_VERSION, "name": name, "fields": fields}
        fd = None
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(path.parent), suffix=".tmp", prefix=".pkg-extra_"
            )
            content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
            os.write(fd, content.encode("utf-8"))
            os.close(fd)
            fd = None
            os.replace(tmp_path, str(path))
            tmp_path = None
        except OSError as exc:
            raise PersistenceError(f"Failed to write store file {path}: {exc}") from exc
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
