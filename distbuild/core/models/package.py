"""
Package models — third-party source packages and the jobs that build them.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class BuildToolKind(str, Enum):
    """Which build driver a source package ships."""

    LEGACY_MAKE = "legacy-make"                 # Makefile.PL → make
    DECLARATIVE_SCRIPT = "declarative-script"   # Build.PL → ./Build

    @property
    def configure_script(self) -> str:
        return "Build.PL" if self is BuildToolKind.DECLARATIVE_SCRIPT else "Makefile.PL"

    @property
    def make_command(self) -> list[str]:
        return ["./Build"] if self is BuildToolKind.DECLARATIVE_SCRIPT else ["make"]


class PackageDescriptor(BaseModel):
    """An unpacked source package waiting to be built."""

    name: str           # directory name, e.g. "DBD-mysql-4.005"
    path: Path


class PackageOverride(BaseModel):
    """Package-specific build tweaks, matched by name pattern.

    ``{root}`` in any value is replaced with the distribution root.
    """

    pattern: str
    extra_args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class PackageBuildJob(BaseModel):
    """The unit of work to configure, compile and install one package."""

    package_name: str
    build_tool_kind: BuildToolKind
    parameters: list[str] = Field(default_factory=list)     # ordered key=value
    extra_args: list[str] = Field(default_factory=list)     # before parameters
    env: dict[str, str] = Field(default_factory=dict)
    interactive: bool = True
    work_dir: Path

    def configure_command(self, runtime: str = "perl") -> list[str]:
        return [
            runtime,
            self.build_tool_kind.configure_script,
            *self.extra_args,
            *self.parameters,
        ]

    def compile_command(self) -> list[str]:
        return list(self.build_tool_kind.make_command)

    def install_command(self) -> list[str]:
        return [*self.build_tool_kind.make_command, "install"]
