"""MySQL backend — needs the MySQL client library for DBD::mysql."""

from __future__ import annotations

from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.services.datastores.base import DatastoreBackend


class Backend(DatastoreBackend):
    @property
    def name(self) -> str:
        return "MySQL"

    def client_library(self) -> DependencyCheckSpec:
        return DependencyCheckSpec(
            name="libmysqlclient",
            shared_object_name="libmysqlclient",
            header_file="mysql.h",
            search_paths_libs=["/usr/lib/mysql", "/usr/local/lib/mysql", "/usr/lib64/mysql"],
            search_paths_headers=["/usr/include/mysql", "/usr/local/include/mysql"],
            owning_module_name="DBD::mysql",
        )
