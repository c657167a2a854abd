"""Resolve the transitive dependency closure ("scopes") of a package.

The traversal is breadth-first over a FIFO worklist. A name is fetched at
most once per run: the processed set is checked when an entry is popped,
not when it is queued, so a name may sit in the queue several times and
every pop after the first is dropped.

Per-node failures never abort the run. Packages the registry does not
know are skipped silently, other fetch or parse errors are logged and
the node is skipped. Only the final write to the store can fail the call.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass

from pkg_extra.errors import (
    MalformedDataError,
    NetworkError,
    PackageNotFoundError,
    RegistryError,
)
from pkg_extra.models import LATEST, FetchOutcome, PackageMeta, PackageRef
from pkg_extra.registry.base import RegistryClientPort
from pkg_extra.store.base import MetadataStorePort

logger = logging.getLogger(__name__)

DEFAULT_MODULE_NAMESPACE_PATTERN = r"com\.unity\.modules"


def latest_version(meta: PackageMeta) -> str | None:
    """Return the ``latest`` dist-tag, else the version whose entry is the ``latest`` marker."""
    tagged = meta.dist_tags.get(LATEST)
    if tagged:
        return tagged
    for version, info in meta.versions.items():
        if info.marker == LATEST:
            return version
    return None


def resolve_effective_version(meta: PackageMeta, requested: str | None) -> str | None:
    """Pick the version whose dependencies get expanded.

    ``None`` and ``"latest"`` resolve to the latest version. A pinned
    version the package never published also falls back to latest.
    """
    if not requested or requested == LATEST:
        return latest_version(meta)
    if requested not in meta.versions:
        return latest_version(meta)
    return requested


@dataclass
class _Run:
    """Traversal state owned by a single resolve_scopes call."""

    root_name: str
    queue: deque[PackageRef]
    processed: set[str]
    scopes: set[str]
    memo: dict[str, PackageMeta]


class ScopeResolver:
    """Computes dependency closures against the registry and stores them."""

    def __init__(
        self,
        registry: RegistryClientPort,
        store: MetadataStorePort,
        *,
        module_namespace_pattern: str = DEFAULT_MODULE_NAMESPACE_PATTERN,
    ) -> None:
        self._registry = registry
        self._store = store
        self._builtin_re = re.compile(module_namespace_pattern, re.IGNORECASE)

    async def resolve_scopes(self, root_name: str) -> list[str]:
        """Resolve and persist the sorted scope list for ``root_name``.

        Raises:
            PersistenceError: If the store rejects the final write.
        """
        scopes = await self.collect_scopes(root_name)
        self._store.set_scopes(root_name, scopes)
        return scopes

    async def collect_scopes(self, root_name: str) -> list[str]:
        """Run the traversal without persisting; returns the sorted scope list."""
        run = _Run(
            root_name=root_name,
            queue=deque([PackageRef(root_name, None)]),
            processed=set(),
            scopes=set(),
            memo={},
        )
        while run.queue:
            await self._visit(run, run.queue.popleft())
        return sorted(run.scopes)

    def is_builtin_module(self, name: str) -> bool:
        """True for environment-provided modules that have no registry entry."""
        return self._builtin_re.search(name) is not None

    async def _visit(self, run: _Run, ref: PackageRef) -> None:
        if ref.name in run.processed:
            return
        run.processed.add(ref.name)

        if self.is_builtin_module(ref.name):
            logger.debug("Skipping builtin module %s (pkg=%s)", ref.name, run.root_name)
            return

        outcome = await self._fetch(run, ref.name)
        if not outcome.ok:
            if not isinstance(outcome.error, PackageNotFoundError):
                logger.error(
                    "fetch package scopes error pkg=%s dep=%s: %s",
                    run.root_name,
                    ref.name,
                    outcome.error,
                )
            return

        meta = outcome.meta
        run.scopes.add(ref.name)

        try:
            dependencies = self._dependencies_of(meta, ref.version)
        except MalformedDataError as exc:
            logger.error(
                "fetch package scopes error pkg=%s dep=%s: %s",
                run.root_name,
                ref.name,
                exc,
            )
            return

        for dep_name, dep_version in dependencies.items():
            run.queue.append(PackageRef(dep_name, dep_version))

    async def _fetch(self, run: _Run, name: str) -> FetchOutcome:
        cached = run.memo.get(name)
        if cached is not None:
            return FetchOutcome(meta=cached)
        try:
            meta = await self._registry.get_package_meta(name)
        except (RegistryError, NetworkError) as exc:
            return FetchOutcome(error=exc)
        run.memo[name] = meta
        return FetchOutcome(meta=meta)

    @staticmethod
    def _dependencies_of(meta: PackageMeta, requested: str | None) -> dict[str, str]:
        version = resolve_effective_version(meta, requested)
        info = meta.versions.get(version) if version else None
        if info is None:
            raise MalformedDataError(f"no version entry for {meta.name}@{version}")
        if info.dependencies is None:
            raise MalformedDataError(f"malformed dependencies for {meta.name}@{version}")
        return info.dependencies
