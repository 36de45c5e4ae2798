"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from distbuild.core.context import BuildContext
from distbuild.core.models import BuildMetadata, DistConfig, RuntimeInfo

from tests.helpers import StubPlatform


@pytest.fixture
def runtime() -> RuntimeInfo:
    return RuntimeInfo(
        version="5.10.1",
        archname="x86_64-linux",
        libpth=["/usr/lib", "/lib"],
        usrinc="/usr/include",
        archlib="/usr/lib/perl5/5.10.1/x86_64-linux",
        install_helper_version="1.54",
    )


@pytest.fixture
def dist_config(tmp_path: Path) -> DistConfig:
    """A DistConfig rooted at a fresh temporary distribution."""
    (tmp_path / "src").mkdir()
    return DistConfig(root=tmp_path)


@pytest.fixture
def make_context(dist_config: DistConfig, runtime: RuntimeInfo):
    """Factory for a BuildContext with overridable parts."""

    def _make(platform=None, metadata: BuildMetadata | None = None, config=None, rt=None):
        return BuildContext(
            config=config or dist_config,
            platform=platform or StubPlatform(),
            runtime=rt or runtime,
            metadata=metadata,
        )

    return _make
