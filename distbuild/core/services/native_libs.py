"""
Native library probe — read-only lookups for shared objects and headers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

_SO_SUFFIXES = (".so", ".dylib", ".a")


class NativeLibraryProbe:
    """Finds shared objects and headers in a list of directories.

    A shared object counts as linkable when any of ``lib<name>.so``,
    ``lib<name>.so.<version>``, ``lib<name>.dylib`` or ``lib<name>.a``
    exists in one of the directories.
    """

    def find_shared_object(self, link_name: str, dirs: Iterable[str]) -> Path | None:
        stem = f"lib{link_name}"
        for d in _unique(dirs):
            directory = Path(d)
            if not directory.is_dir():
                continue
            for suffix in _SO_SUFFIXES:
                candidate = directory / f"{stem}{suffix}"
                if candidate.exists():
                    logger.debug("Found %s at %s", stem, candidate)
                    return candidate
            versioned = sorted(directory.glob(f"{stem}.so.*"))
            if versioned:
                logger.debug("Found %s at %s", stem, versioned[0])
                return versioned[0]
        return None

    def find_header(self, header: str, dirs: Iterable[str]) -> Path | None:
        for d in _unique(dirs):
            candidate = Path(d) / header
            if candidate.is_file():
                logger.debug("Found %s at %s", header, candidate)
                return candidate
        return None


def _unique(dirs: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(d for d in dirs if d))
