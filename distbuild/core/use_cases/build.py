"""
Build use case — verify, compile everything, record what we built for.

    create_context → verify(build) → [Apache/mod_perl] → modules → build.db
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from distbuild.core.context import BuildContext, create_context
from distbuild.core.models.config import DistConfig
from distbuild.core.models.metadata import BuildMetadata
from distbuild.core.persistence.build_metadata import save_build_metadata
from distbuild.core.services.apache_build import ApacheModPerlBuilder
from distbuild.core.services.automaton import SubprocessAutomaton
from distbuild.core.services.datastores import load_backend
from distbuild.core.services.dependency_verifier import DependencyVerifier
from distbuild.core.services.module_build import ModuleBuildOrchestrator, prepare_sources
from distbuild.core.use_cases.verify import skip_set

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a completed build."""

    platform: str
    runtime_version: str
    architecture: str
    checks: list[str] = field(default_factory=list)
    datastores: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    apache_built: bool = False
    metadata_path: Path | None = None

    def to_dict(self) -> dict:
        return {
            "platform": self.platform,
            "runtime_version": self.runtime_version,
            "architecture": self.architecture,
            "checks": self.checks,
            "datastores": self.datastores,
            "packages": self.packages,
            "apache_built": self.apache_built,
            "metadata_path": str(self.metadata_path) if self.metadata_path else None,
        }


def run_build(
    config: DistConfig,
    explicit_platform: str | None = None,
    force_probe: bool = False,
    skip_datastores: Iterable[str] = (),
    prompt_overrides: Mapping[str, str] | None = None,
    echo: bool = False,
    context: BuildContext | None = None,
) -> BuildResult:
    """Build the distribution in place.

    Args:
        config: Loaded distbuild.yml.
        explicit_platform: Platform name that beats everything else.
        force_probe: Ignore the platform recorded by a previous build.
        skip_datastores: Backends to leave out (added to the configured ones).
        prompt_overrides: Extra trigger → response pairs for module builds.
        echo: Show interactive build output on stdout.
        context: Pre-built context (skips platform and runtime resolution).

    Raises:
        DistBuildError: Whatever failed first.  build.db is only written
            after everything succeeded.
    """
    if context is None:
        context = create_context(config, explicit_platform, force_probe)
    skipped = skip_set(config, skip_datastores)

    verifier = DependencyVerifier(context)
    checks = verifier.verify("build", skipped)
    datastores = [
        load_backend(name, context.runtime).name
        for name in verifier.datastores("build", skipped)
    ]

    result = BuildResult(
        platform=context.platform.name,
        runtime_version=context.runtime.version,
        architecture=context.runtime.archname,
        checks=checks,
        datastores=datastores,
    )

    automaton = SubprocessAutomaton(timeout=config.prompt_timeout, echo=echo)

    if config.apache.enabled:
        ApacheModPerlBuilder(context, automaton=automaton).build()
        result.apache_built = True

    packages = prepare_sources(config.src_path, context.root / "tmp" / "build")
    report = ModuleBuildOrchestrator(context, automaton=automaton).build_all(
        packages, prompt_overrides,
    )
    result.packages = report.built

    metadata = BuildMetadata(
        platform=context.platform.name,
        runtime_version=context.runtime.version,
        architecture=context.runtime.archname,
        db_platforms=datastores,
        dev=config.dev,
    )
    save_build_metadata(metadata, config.metadata_path)
    result.metadata_path = config.metadata_path
    logger.info("Build complete for %s; metadata saved to %s", metadata.platform, config.metadata_path)
    return result
