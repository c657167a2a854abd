"""Exception hierarchy for pkg-extra.

All exceptions inherit from PkgExtraError (single catch point).
Each refresh step catches at its own boundary, so only the batch driver
and the CLI ever see these unwinding.
"""

from __future__ import annotations


class PkgExtraError(Exception):
    """Base exception for all pkg-extra errors."""


class ConfigError(PkgExtraError):
    """Error loading or validating the settings file."""


class NetworkError(PkgExtraError):
    """Transport failure, timeout, or unexpected HTTP status on any remote call."""


class RegistryError(PkgExtraError):
    """Error fetching a document from the package registry."""


class PackageNotFoundError(RegistryError):
    """The registry has no entry for the requested package (HTTP 404)."""


class MalformedDataError(RegistryError):
    """A registry document is missing fields or is not valid JSON."""


class PersistenceError(PkgExtraError):
    """Error writing to or reading from the metadata store."""


class PackageLoadError(PkgExtraError):
    """A package record in the catalog could not be read or parsed."""


class GitHubError(PkgExtraError):
    """Error talking to the GitHub REST or GraphQL API."""


class MediaError(PkgExtraError):
    """Error talking to the image cache service."""


class HealthCheckError(PkgExtraError):
    """Error signalling the health-check endpoint."""
