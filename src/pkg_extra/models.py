"""Domain models for pkg-extra. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass, field

from pkg_extra.errors import NetworkError, RegistryError

LATEST = "latest"

# ─── Registry Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PackageRef:
    """A dependency edge target: a package name plus the requested version.

    ``version`` of ``None`` or ``"latest"`` means the package's current
    latest version. Identity for deduplication is the name alone.
    """

    name: str
    version: str | None = None


@dataclass(frozen=True, slots=True)
class VersionInfo:
    """One published version of a package.

    ``dependencies`` is ``None`` when the registry document carries
    something other than a map for this version's dependencies. A version
    that declares no dependencies at all has an empty map.
    ``marker`` is set when the registry lists the version entry as a bare
    string (e.g. ``"latest"``) instead of a manifest object.
    """

    version: str
    dependencies: dict[str, str] | None = field(default_factory=dict)
    unity: str = ""
    marker: str = ""


@dataclass(frozen=True, slots=True)
class PackageMeta:
    """A package document from the registry."""

    name: str
    dist_tags: dict[str, str] = field(default_factory=dict)
    versions: dict[str, VersionInfo] = field(default_factory=dict)
    time: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of one registry lookup: either ``meta`` or ``error`` is set."""

    meta: PackageMeta | None = None
    error: RegistryError | NetworkError | None = None

    @property
    def ok(self) -> bool:
        return self.meta is not None


# ─── Repository Models ────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepoInfo:
    """Upstream repository signals. Times are epoch milliseconds."""

    stars: int = 0
    parent_stars: int | None = None
    pushed_time: int | None = None
    updated_time: int | None = None


# ─── Catalog Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PackageRecord:
    """A package as declared in the catalog."""

    name: str
    repo: str = ""
    owner: str = ""
    parent_owner: str = ""
    hunter: str = ""
    image: str = ""
    readme: dict[str, str] = field(default_factory=dict)

    def readme_path(self, lang: str) -> str:
        """Readme location for a language, e.g. ``"master:README.md"``."""
        return self.readme.get(lang, "")


# ─── Media Models ─────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ImageQuery:
    """Lookup key understood by the image cache service."""

    image_url: str
    width: int
    height: int
    fit: str = "cover"

    def to_params(self) -> dict[str, object]:
        return {
            "imageUrl": self.image_url,
            "width": self.width,
            "height": self.height,
            "fit": self.fit,
        }


@dataclass(frozen=True, slots=True)
class ImageEntry:
    """State of a cached image as reported by the image cache service."""

    available: bool = False
    filename: str = ""
    updated_time: int | None = None
