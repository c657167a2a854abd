"""Load package records from the catalog directory (one YAML file per package)."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from pkg_extra.errors import PackageLoadError
from pkg_extra.models import PackageRecord
from pkg_extra.store.json_store import DEFAULT_LANG, prop_key_for_lang

logger = logging.getLogger(__name__)

_SUFFIX = ".yml"

_GITHUB_URL_RE = re.compile(
    r"https?://github\.com/([^/]+)/([^/]+?)(?:\.git)?(?:/.*)?$",
    re.IGNORECASE,
)


def parse_repo(repo_url: str) -> str:
    """Extract ``owner/repo`` from a GitHub URL; other values pass through unchanged."""
    m = _GITHUB_URL_RE.match(repo_url)
    if m:
        return f"{m.group(1)}/{m.group(2)}"
    return repo_url


class PackageCatalog:
    """Read-only view over ``<catalog_dir>/<name>.yml`` package records."""

    def __init__(self, catalog_dir: Path | str, *, languages: tuple[str, ...] = (DEFAULT_LANG,)) -> None:
        self._dir = Path(catalog_dir)
        self._languages = languages

    def _path_for(self, name: str) -> Path:
        return self._dir / f"{name}{_SUFFIX}"

    def package_exists(self, name: str) -> bool:
        if not name or "/" in name or name.startswith("."):
            return False
        return self._path_for(name).is_file()

    def load_package_names(self, *, sort_by_mtime: bool = False) -> list[str]:
        """List catalog package names, most recently modified first when asked."""
        if not self._dir.is_dir():
            logger.warning("Catalog directory %s does not exist", self._dir)
            return []
        paths = [p for p in self._dir.iterdir() if p.is_file() and p.suffix == _SUFFIX]
        if sort_by_mtime:
            paths.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        else:
            paths.sort(key=lambda p: p.stem)
        return [p.stem for p in paths]

    def load_package(self, name: str) -> PackageRecord:
        """Parse one package record.

        Raises:
            PackageLoadError: If the file is missing, unreadable, or not a mapping.
        """
        path = self._path_for(name)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise PackageLoadError(f"Package record not found: {path}") from None
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise PackageLoadError(f"Failed to parse package record '{path}': {exc}") from exc
        if not isinstance(data, dict):
            raise PackageLoadError(f"Invalid package record in {path}: expected a YAML mapping.")

        readme: dict[str, str] = {}
        for lang in self._languages:
            value = data.get(prop_key_for_lang("readme", lang))
            if isinstance(value, str) and value:
                readme[lang] = value

        return PackageRecord(
            name=str(data.get("name") or name),
            repo=parse_repo(str(data.get("repoUrl") or data.get("repo") or "")),
            owner=str(data.get("owner") or ""),
            parent_owner=str(data.get("parentOwner") or ""),
            hunter=str(data.get("hunter") or ""),
            image=str(data.get("image") or ""),
            readme=readme,
        )
