"""
Dependency verifier — makes sure the system can build or run the distribution.

Pure validation: nothing is installed or changed.  Checks run in a
fixed order and stop at the first failure, so the operator gets one
actionable error instead of a checklist, and later checks never run
against an environment an earlier check has already ruled out:

    1. runtime match          (install mode only)
    2. datastore backends
    3. shared libraries / headers (headers in build mode only)
    4. toolchain sanity
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Literal

from distbuild.core.context import BuildContext
from distbuild.core.errors import (
    BrokenToolchain,
    DatastoreUnavailable,
    DependencyError,
    MissingBuildMetadata,
    MissingHeader,
    MissingLibrary,
    RuntimeMismatch,
)
from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.services.datastores import discover_backends, load_backend
from distbuild.core.services.native_libs import NativeLibraryProbe

logger = logging.getLogger(__name__)

Mode = Literal["build", "install"]
Check = tuple[str, Callable[[], None]]


class DependencyVerifier:
    """Runs the ordered, fail-fast dependency check sequence."""

    def __init__(
        self,
        context: BuildContext,
        probe: NativeLibraryProbe | None = None,
        backend_loader: Callable = load_backend,
        backend_finder: Callable[[], list[str]] = discover_backends,
    ) -> None:
        self.context = context
        self.probe = probe or NativeLibraryProbe()
        self._load_backend = backend_loader
        self._find_backends = backend_finder

    # ── Public API ──────────────────────────────────────────────

    def verify(self, mode: Mode, skip_set: AbstractSet[str] = frozenset()) -> list[str]:
        """Run every check for ``mode``, stopping at the first failure.

        Args:
            mode: "build" before compiling, "install" before installing.
            skip_set: Datastore backends to leave out (case-insensitive).

        Returns:
            Names of the checks that ran, in order.

        Raises:
            DependencyError: The first check that failed.
        """
        if mode not in ("build", "install"):
            raise ValueError(f"Unknown verification mode: {mode!r}")

        ran: list[str] = []
        for name, check in self.checks(mode, skip_set):
            logger.debug("Checking %s", name)
            check()
            ran.append(name)
        logger.info("All %d dependency checks passed (%s mode)", len(ran), mode)
        return ran

    def checks(self, mode: Mode, skip_set: AbstractSet[str] = frozenset()) -> list[Check]:
        """The ordered check sequence for ``mode``, without running it."""
        sequence: list[Check] = []

        if mode == "install":
            sequence.append(("runtime", self.check_runtime))

        for backend in self.datastores(mode, skip_set):
            sequence.append((f"datastore:{backend}", _bind(self.check_datastore, backend, mode)))

        for spec in self.context.platform.dependency_checks(self.context.runtime):
            if spec.shared_object_name:
                sequence.append((f"library:{spec.name}", _bind(self.check_library, spec)))
            if spec.header_file and mode == "build":
                sequence.append((f"header:{spec.name}", _bind(self.check_header, spec)))

        sequence.append(("toolchain", self.check_toolchain))
        return sequence

    def datastores(self, mode: Mode, skip_set: AbstractSet[str] = frozenset()) -> list[str]:
        """Datastore backends to verify, minus the skipped ones.

        At install time the list comes from the build metadata; at
        build time it is every backend module that can be discovered.
        """
        skipped = {s.lower() for s in skip_set}
        if mode == "install":
            metadata = self.context.metadata
            names = list(metadata.db_platforms) if metadata else []
        else:
            names = self._find_backends()
        return [n for n in names if n.lower() not in skipped]

    # ── Individual checks ───────────────────────────────────────

    def check_runtime(self) -> None:
        """The live perl must be the one the distribution was built with."""
        metadata = self.context.metadata
        runtime = self.context.runtime
        if metadata is None:
            raise MissingBuildMetadata(str(self.context.config.metadata_path))
        if metadata.runtime_version != runtime.version:
            raise RuntimeMismatch(metadata.runtime_version, runtime.version)
        if metadata.architecture != runtime.archname:
            raise RuntimeMismatch(metadata.architecture, runtime.archname, field="architecture")

    def check_datastore(self, backend_name: str, mode: Mode) -> None:
        try:
            backend = self._load_backend(
                backend_name,
                self.context.runtime,
                self.probe,
                lib_dirs=self.context.platform.library_search_paths(self.context.runtime),
                inc_dirs=self.context.platform.header_search_paths(self.context.runtime),
            )
        except ImportError as e:
            raise DatastoreUnavailable(backend_name, str(e)) from e
        try:
            backend.verify_dependencies(mode)
        except DependencyError as e:
            raise DatastoreUnavailable(backend_name, str(e)) from e

    def check_library(self, spec: DependencyCheckSpec) -> None:
        dirs = spec.search_paths_libs + self.context.platform.library_search_paths(
            self.context.runtime
        )
        if self.probe.find_shared_object(spec.link_name or spec.name, dirs) is None:
            raise MissingLibrary(spec.name, dirs)

    def check_header(self, spec: DependencyCheckSpec) -> None:
        dirs = spec.search_paths_headers + self.context.platform.header_search_paths(
            self.context.runtime
        )
        if self.probe.find_header(spec.header_file or "", dirs) is None:
            raise MissingHeader(spec.name, spec.header_file or "", spec.owning_module_name)

    def check_toolchain(self) -> None:
        version = self.context.runtime.install_helper_version
        if not version:
            return
        broken = self.context.platform.broken_install_helper_versions()
        if any(_same_version(version, b) for b in broken):
            raise BrokenToolchain(version)


def _bind(func: Callable, *args) -> Callable[[], None]:
    return lambda: func(*args)


def _same_version(a: str, b: str) -> bool:
    # perl compares module versions numerically: 1.42 == 1.420
    try:
        return float(a) == float(b)
    except ValueError:
        return a == b
