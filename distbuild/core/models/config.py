"""
Distribution configuration — the typed form of distbuild.yml.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class InstallSettings(BaseModel):
    """Where and as whom the distribution is installed."""

    user: str = "smolder"
    group: str = "smolder"
    install_path: str = "/usr/local/smolder"
    host_name: str = "localhost"
    port: int = 80
    ip_address: str | None = None   # checked against local interfaces if set


class ApacheSettings(BaseModel):
    """Optional Apache/mod_perl build bundled with the distribution."""

    enabled: bool = False
    apache_dir: str = ""            # unpacked Apache source (relative to root)
    mod_perl_dir: str = ""          # unpacked mod_perl source (relative to root)
    debug: bool = False


class DistConfig(BaseModel):
    """Top-level distribution configuration."""

    name: str = "smolder"
    root: Path = Field(default_factory=Path.cwd)
    runtime: str = "perl"
    src_dir: str = "src"
    lib_dir: str = "lib"
    platform_dir: str = "platform"
    metadata_file: str = "data/build.db"
    dev: bool = False
    prompt_timeout: float | None = None         # None = wait forever
    skip_datastores: list[str] = Field(default_factory=list)
    apache: ApacheSettings = Field(default_factory=ApacheSettings)
    install: InstallSettings = Field(default_factory=InstallSettings)

    def path(self, relative: str) -> Path:
        """Resolve a configured path against the distribution root."""
        return (self.root / relative).resolve()

    @property
    def metadata_path(self) -> Path:
        return self.path(self.metadata_file)

    @property
    def lib_path(self) -> Path:
        return self.path(self.lib_dir)

    @property
    def src_path(self) -> Path:
        return self.path(self.src_dir)

    @property
    def platform_path(self) -> Path:
        return self.path(self.platform_dir)
