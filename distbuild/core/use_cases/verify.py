"""
Verify use case — resolve the platform and run the dependency checks only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from distbuild.core.context import BuildContext, create_context
from distbuild.core.errors import MissingBuildMetadata
from distbuild.core.models.config import DistConfig
from distbuild.core.services.dependency_verifier import DependencyVerifier, Mode


@dataclass
class VerifyResult:
    """Result of a successful verification."""

    mode: str
    platform: str
    runtime_version: str
    architecture: str
    checks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "platform": self.platform,
            "runtime_version": self.runtime_version,
            "architecture": self.architecture,
            "checks": self.checks,
        }


def skip_set(config: DistConfig, extra: Iterable[str] = ()) -> frozenset[str]:
    """Datastores to skip: configured ones plus any given on the command line."""
    return frozenset([*config.skip_datastores, *extra])


def require_build_metadata(config: DistConfig) -> None:
    """Fail before platform resolution when the distribution was never built."""
    if not config.metadata_path.is_file():
        raise MissingBuildMetadata(str(config.metadata_path))


def run_verify(
    config: DistConfig,
    mode: Mode = "build",
    explicit_platform: str | None = None,
    force_probe: bool = False,
    skip_datastores: Iterable[str] = (),
    context: BuildContext | None = None,
) -> VerifyResult:
    """Check that this machine can build (or install) the distribution.

    Raises:
        DistBuildError: Platform resolution or the first failed check.
    """
    if context is None:
        if mode == "install":
            require_build_metadata(config)
        context = create_context(config, explicit_platform, force_probe)

    checks = DependencyVerifier(context).verify(mode, skip_set(config, skip_datastores))
    return VerifyResult(
        mode=mode,
        platform=context.platform.name,
        runtime_version=context.runtime.version,
        architecture=context.runtime.archname,
        checks=checks,
    )
