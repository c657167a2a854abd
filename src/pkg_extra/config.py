"""Load job settings from a YAML file, falling back to built-in defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from pkg_extra.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PKG_EXTRA_CONFIG"

_DAY = 86400


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How often a failed network call is attempted before giving up.

    ``max_attempts`` of 1 means a single attempt and no retry.
    """

    max_attempts: int = 1
    base_delay: float = 1.0


@dataclass(frozen=True, slots=True)
class ImageSettings:
    width: int = 800
    height: int = 400
    fit: str = "cover"
    duration: int = 7 * _DAY


@dataclass(frozen=True, slots=True)
class AvatarSize:
    size: int
    duration: int = 7 * _DAY


def _default_avatar_sizes() -> dict[str, AvatarSize]:
    return {
        "small": AvatarSize(size=48),
        "normal": AvatarSize(size=96),
        "large": AvatarSize(size=192),
    }


@dataclass(frozen=True, slots=True)
class HealthCheckSettings:
    url: str = "https://hc-ping.com"
    ids: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything the job needs besides the package names to process."""

    registry_url: str = "https://package.openupm.com"
    downloads_url: str = "https://package.openupm.com/downloads/point/last-month"
    github_api_url: str = "https://api.github.com"
    media_url: str = "http://localhost:3600/media"
    store_dir: str = "data/extra"
    catalog_dir: str = "data/packages"
    request_timeout: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    module_namespace_pattern: str = r"com\.unity\.modules"
    readme_languages: tuple[str, ...] = ("en-US", "zh-CN")
    image: ImageSettings = field(default_factory=ImageSettings)
    avatar: dict[str, AvatarSize] = field(default_factory=_default_avatar_sizes)
    health_check: HealthCheckSettings = field(default_factory=HealthCheckSettings)
    github_token: str = ""


def load_settings(path: Path | str | None = None) -> Settings:
    """Load settings from ``path``, or from ``$PKG_EXTRA_CONFIG`` when unset.

    With neither given, the built-in defaults are returned. ``GITHUB_TOKEN``
    in the environment always wins over a token in the file.

    Raises:
        ConfigError: If the file is missing, is not a YAML mapping, or
            holds values of the wrong type.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None

    data: dict = {}
    if path is not None:
        data = _read_yaml(Path(path))

    try:
        settings = _parse_settings(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings in {path}: {exc}") from exc

    env_token = os.environ.get("GITHUB_TOKEN", "").strip()
    if env_token:
        settings = replace(settings, github_token=env_token)
    return settings


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read settings file '{path}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid settings format in {path}: expected a YAML mapping.")
    logger.debug("Loaded settings from %s", path)
    return data


def _parse_settings(data: dict) -> Settings:
    defaults = Settings()

    retry_raw = _section(data, "retry")
    retry = RetryPolicy(
        max_attempts=int(retry_raw.get("max_attempts", defaults.retry.max_attempts)),
        base_delay=float(retry_raw.get("base_delay", defaults.retry.base_delay)),
    )
    if retry.max_attempts < 1:
        raise ValueError("retry.max_attempts must be at least 1")

    image_raw = _section(data, "image")
    image = ImageSettings(
        width=int(image_raw.get("width", defaults.image.width)),
        height=int(image_raw.get("height", defaults.image.height)),
        fit=str(image_raw.get("fit", defaults.image.fit)),
        duration=int(image_raw.get("duration", defaults.image.duration)),
    )

    avatar = defaults.avatar
    if "avatar" in data:
        avatar = {}
        for size_name, entry in _section(data, "avatar").items():
            if not isinstance(entry, dict):
                raise ValueError(f"avatar.{size_name} must be a mapping")
            avatar[str(size_name)] = AvatarSize(
                size=int(entry["size"]),
                duration=int(entry.get("duration", 7 * _DAY)),
            )

    hc_raw = _section(data, "health_check")
    health_check = HealthCheckSettings(
        url=str(hc_raw.get("url", defaults.health_check.url)),
        ids={str(k): str(v) for k, v in (hc_raw.get("ids") or {}).items()},
    )

    languages = data.get("readme_languages", defaults.readme_languages)
    if not isinstance(languages, (list, tuple)):
        raise ValueError("readme_languages must be a list")

    return Settings(
        registry_url=str(data.get("registry_url", defaults.registry_url)),
        downloads_url=str(data.get("downloads_url", defaults.downloads_url)),
        github_api_url=str(data.get("github_api_url", defaults.github_api_url)),
        media_url=str(data.get("media_url", defaults.media_url)),
        store_dir=str(data.get("store_dir", defaults.store_dir)),
        catalog_dir=str(data.get("catalog_dir", defaults.catalog_dir)),
        request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
        retry=retry,
        module_namespace_pattern=str(
            data.get("module_namespace_pattern", defaults.module_namespace_pattern)
        ),
        readme_languages=tuple(str(lang) for lang in languages),
        image=image,
        avatar=avatar,
        health_check=health_check,
        github_token=str(data.get("github_token", "") or ""),
    )


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping")
    return value
