"""
Domain models — Pydantic types for the build orchestrator.

All models are re-exported here for convenient access:

    from distbuild.core.models import BuildMetadata, PromptRuleSet, PackageBuildJob
"""

from distbuild.core.models.config import ApacheSettings, DistConfig, InstallSettings
from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.models.metadata import BuildMetadata, RuntimeInfo
from distbuild.core.models.package import (
    BuildToolKind,
    PackageBuildJob,
    PackageDescriptor,
    PackageOverride,
)
from distbuild.core.models.prompt import PromptRule, PromptRuleSet
from distbuild.core.models.provision import ProvisionRequest

__all__ = [
    # config.py
    "ApacheSettings",
    # metadata.py
    "BuildMetadata",
    # package.py
    "BuildToolKind",
    # dependency.py
    "DependencyCheckSpec",
    "DistConfig",
    "InstallSettings",
    "PackageBuildJob",
    "PackageDescriptor",
    "PackageOverride",
    # prompt.py
    "PromptRule",
    "PromptRuleSet",
    # provision.py
    "ProvisionRequest",
    "RuntimeInfo",
]
