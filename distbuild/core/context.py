"""
Build context — the single source of truth for "what are we building, where, on what."

The context is constructed ONCE at startup by the use case that
launches a build or install, then passed by reference into every
component:

    - Use cases:  run_build/run_install → create_context(config, ...)
    - Tests:      BuildContext(config=..., platform=..., runtime=...)

Design notes:
    - Frozen dataclass, not module-level globals.  Nothing mutates it
      after construction, so no locking is needed.
    - ``metadata`` is None until the distribution has been built once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from distbuild.core.models.config import DistConfig
from distbuild.core.models.metadata import BuildMetadata, RuntimeInfo
from distbuild.core.persistence.build_metadata import load_build_metadata
from distbuild.core.platforms.base import PlatformStrategy
from distbuild.core.platforms.registry import default_registry
from distbuild.core.services.runtime_probe import probe_runtime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildContext:
    """Everything a component needs to know about the current run."""

    config: DistConfig
    platform: PlatformStrategy
    runtime: RuntimeInfo
    metadata: BuildMetadata | None = None

    @property
    def root(self) -> Path:
        return self.config.root


def create_context(
    config: DistConfig,
    explicit_platform: str | None = None,
    force_probe: bool = False,
    runtime: RuntimeInfo | None = None,
) -> BuildContext:
    """Resolve the platform, probe the runtime and load build metadata."""
    metadata = load_build_metadata(config.metadata_path)
    registry = default_registry(config.platform_path)
    platform = registry.resolve(
        explicit_name=explicit_platform,
        force_probe=force_probe,
        metadata=metadata,
    )
    if runtime is None:
        runtime = probe_runtime(config.runtime)
    logger.info(
        "Context: platform=%s perl=%s arch=%s",
        platform.name, runtime.version, runtime.archname,
    )
    return BuildContext(config=config, platform=platform, runtime=runtime, metadata=metadata)
