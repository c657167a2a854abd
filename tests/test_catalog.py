"""Tests for the package catalog."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from pkg_extra.catalog import PackageCatalog, parse_repo
from pkg_extra.errors import PackageLoadError


def _write(catalog_dir: Path, name: str, body: str, mtime: int | None = None) -> Path:
    path = catalog_dir / f"{name}.yml"
    path.write_text(body, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


class TestParseRepo:
    def test_github_url(self) -> None:
        assert parse_repo("https://github.com/owner/repo") == "owner/repo"

    def test_git_suffix_and_path(self) -> None:
        assert parse_repo("https://github.com/owner/repo.git") == "owner/repo"
        assert parse_repo("https://github.com/owner/repo/tree/main") == "owner/repo"

    def test_plain_reference_passes_through(self) -> None:
        assert parse_repo("owner/repo") == "owner/repo"


class TestPackageCatalog:
    def test_load_package(self, tmp_path: Path) -> None:
        _write(
            tmp_path,
            "com.example.a",
            "name: com.example.a\n"
            "repoUrl: https://github.com/owner/a\n"
            "owner: owner\n"
            "parentOwner: upstream\n"
            "hunter: finder\n"
            "image: https://example.com/a.png\n"
            "readme: master:README.md\n"
            "readme_zhCN: master:README.zh-CN.md\n",
        )
        catalog = PackageCatalog(tmp_path, languages=("en-US", "zh-CN"))
        record = catalog.load_package("com.example.a")
        assert record.name == "com.example.a"
        assert record.repo == "owner/a"
        assert record.owner == "owner"
        assert record.parent_owner == "upstream"
        assert record.hunter == "finder"
        assert record.image == "https://example.com/a.png"
        assert record.readme_path("en-US") == "master:README.md"
        assert record.readme_path("zh-CN") == "master:README.zh-CN.md"

    def test_unconfigured_language_is_ignored(self, tmp_path: Path) -> None:
        _write(tmp_path, "a", "readme: master:README.md\nreadme_zhCN: x\n")
        record = PackageCatalog(tmp_path).load_package("a")
        assert record.readme == {"en-US": "master:README.md"}

    def test_package_exists(self, tmp_path: Path) -> None:
        _write(tmp_path, "a", "name: a\n")
        catalog = PackageCatalog(tmp_path)
        assert catalog.package_exists("a")
        assert not catalog.package_exists("b")
        assert not catalog.package_exists("")
        assert not catalog.package_exists("../a")

    def test_names_sorted_by_mtime_newest_first(self, tmp_path: Path) -> None:
        _write(tmp_path, "old", "name: old\n", mtime=1_000)
        _write(tmp_path, "new", "name: new\n", mtime=3_000)
        _write(tmp_path, "mid", "name: mid\n", mtime=2_000)
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        catalog = PackageCatalog(tmp_path)
        assert catalog.load_package_names(sort_by_mtime=True) == ["new", "mid", "old"]
        assert catalog.load_package_names() == ["mid", "new", "old"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert PackageCatalog(tmp_path / "nope").load_package_names() == []

    def test_missing_record(self, tmp_path: Path) -> None:
        with pytest.raises(PackageLoadError, match="not found"):
            PackageCatalog(tmp_path).load_package("ghost")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        _write(tmp_path, "bad", "name: [oops\n")
        with pytest.raises(PackageLoadError, match="Failed to parse"):
            PackageCatalog(tmp_path).load_package("bad")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        _write(tmp_path, "list", "- a\n")
        with pytest.raises(PackageLoadError, match="expected a YAML mapping"):
            PackageCatalog(tmp_path).load_package("list")

    def test_non_utf8_record(self, tmp_path: Path) -> None:
        (tmp_path / "latin1.yml").write_bytes(b"name: latin1\nowner: caf\xe9\n")
        with pytest.raises(PackageLoadError, match="Failed to parse"):
            PackageCatalog(tmp_path).load_package("latin1")
