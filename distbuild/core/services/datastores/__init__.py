"""
Datastore backends — discovery and loading.

Backends are the non-underscore modules of this package other than
``base``; each defines a ``Backend`` class.  The module name is the
lowercased backend name (``mysql`` → ``MySQL``).
"""

from __future__ import annotations

import importlib
import logging
import pkgutil

from distbuild.core.models.metadata import RuntimeInfo
from distbuild.core.services.datastores.base import DatastoreBackend, Mode
from distbuild.core.services.native_libs import NativeLibraryProbe

logger = logging.getLogger(__name__)

__all__ = ["DatastoreBackend", "Mode", "discover_backends", "load_backend"]


def discover_backends() -> list[str]:
    """Module names of every backend in this package, sorted."""
    names = [
        info.name
        for info in pkgutil.iter_modules(__path__)
        if not info.name.startswith("_") and info.name != "base"
    ]
    return sorted(names)


def load_backend(
    name: str,
    runtime: RuntimeInfo,
    probe: NativeLibraryProbe | None = None,
    lib_dirs: list[str] | None = None,
    inc_dirs: list[str] | None = None,
) -> DatastoreBackend:
    """Instantiate the backend called ``name`` (case-insensitive).

    ``lib_dirs`` and ``inc_dirs`` are the active platform's search roots;
    when omitted the backend searches the runtime's own directories.

    Raises:
        ImportError: If no backend module has that name.
    """
    module_name = name.lower()
    if module_name not in discover_backends():
        raise ImportError(f"no datastore backend named '{name}'")
    module = importlib.import_module(f"{__name__}.{module_name}")
    backend = module.Backend(runtime=runtime, probe=probe, lib_dirs=lib_dirs, inc_dirs=inc_dirs)
    logger.debug("Loaded datastore backend %s", backend.name)
    return backend
