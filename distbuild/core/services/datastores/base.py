"""
Datastore backend base — the contract every database backend implements.

Each backend lives in its own module in this package and exposes a
``Backend`` class.  The DependencyVerifier calls ``verify_dependencies``
generically; it never knows which database it is talking to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from distbuild.core.errors import MissingHeader, MissingLibrary
from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.models.metadata import RuntimeInfo
from distbuild.core.services.native_libs import NativeLibraryProbe

Mode = Literal["build", "install"]


class DatastoreBackend(ABC):
    """Abstract base class for datastore backends."""

    def __init__(
        self,
        runtime: RuntimeInfo,
        probe: NativeLibraryProbe | None = None,
        lib_dirs: list[str] | None = None,
        inc_dirs: list[str] | None = None,
    ) -> None:
        self.runtime = runtime
        self.probe = probe or NativeLibraryProbe()
        # platform search roots; fall back to what perl itself reports
        self.lib_dirs = list(lib_dirs) if lib_dirs is not None else list(runtime.libpth)
        self.inc_dirs = (
            list(inc_dirs) if inc_dirs is not None else [runtime.usrinc, "/usr/local/include"]
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier as written in build.db (e.g. 'MySQL')."""

    @abstractmethod
    def client_library(self) -> DependencyCheckSpec:
        """The client library the database driver links against."""

    def verify_dependencies(self, mode: Mode) -> None:
        """Raise a DependencyError if this backend can't be used.

        Headers are only needed to compile the driver, so they are
        checked in build mode only.
        """
        spec = self.client_library()
        lib_dirs = spec.search_paths_libs + self.lib_dirs
        if spec.link_name and self.probe.find_shared_object(spec.link_name, lib_dirs) is None:
            raise MissingLibrary(spec.name, lib_dirs)
        if spec.header_file and mode == "build":
            inc_dirs = spec.search_paths_headers + self.inc_dirs
            if self.probe.find_header(spec.header_file, inc_dirs) is None:
                raise MissingHeader(spec.name, spec.header_file, spec.owning_module_name)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
