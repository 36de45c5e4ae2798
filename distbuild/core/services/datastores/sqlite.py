"""SQLite backend — needs libsqlite3 for DBD::SQLite."""

from __future__ import annotations

from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.services.datastores.base import DatastoreBackend


class Backend(DatastoreBackend):
    @property
    def name(self) -> str:
        return "SQLite"

    def client_library(self) -> DependencyCheckSpec:
        return DependencyCheckSpec(
            name="libsqlite3",
            shared_object_name="libsqlite3",
            header_file="sqlite3.h",
            owning_module_name="DBD::SQLite",
        )
