"""
Dependency check model — one native library the distribution links against.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DependencyCheckSpec(BaseModel):
    """A shared object and/or header that must be present.

    The shared object name carries the ``lib`` prefix but no extension
    (``libgd``), since the extension differs between platforms.
    """

    name: str                                   # used in error messages
    header_file: str | None = None              # e.g. "gd.h"
    shared_object_name: str | None = None       # e.g. "libgd"
    search_paths_headers: list[str] = Field(default_factory=list)
    search_paths_libs: list[str] = Field(default_factory=list)
    owning_module_name: str | None = None       # e.g. "GD"

    @property
    def link_name(self) -> str | None:
        """The linker name of the shared object (``libgd`` → ``gd``)."""
        if not self.shared_object_name:
            return None
        so = self.shared_object_name
        return so[3:] if so.startswith("lib") else so
