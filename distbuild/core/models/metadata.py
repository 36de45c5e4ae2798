"""
Build metadata and runtime models.

BuildMetadata is written once at build time (data/build.db) and read
back at install time to detect drift between the environment the
distribution was compiled for and the one it is being installed on.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class BuildMetadata(BaseModel):
    """Persisted record of the environment a distribution was built for."""

    platform: str | None = None
    runtime_version: str | None = None
    architecture: str | None = None
    db_platforms: list[str] = Field(default_factory=list)
    dev: bool = False

    @field_validator("db_platforms")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        # set semantics, first occurrence keeps its position
        return list(dict.fromkeys(v for v in value if v))


class RuntimeInfo(BaseModel):
    """Live view of the embedding runtime (the perl interpreter)."""

    version: str
    archname: str
    libpth: list[str] = Field(default_factory=list)
    usrinc: str = "/usr/include"
    archlib: str = ""
    install_helper_version: str | None = None   # ExtUtils::Install
