"""
Install / upgrade use case — check the target machine, then set it up.

    create_context (platform from build.db) → verify(install)
        → IP check → user/group → finish_installation / finish_upgrade
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from distbuild.core.context import BuildContext, create_context
from distbuild.core.errors import ConfigError
from distbuild.core.models.config import DistConfig, InstallSettings
from distbuild.core.models.provision import ProvisionRequest
from distbuild.core.services.dependency_verifier import DependencyVerifier
from distbuild.core.services.provisioner import ProvisionResult, UserGroupProvisioner
from distbuild.core.use_cases.verify import require_build_metadata, skip_set

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of a completed install or upgrade."""

    upgrade: bool
    platform: str
    settings: InstallSettings
    checks: list[str] = field(default_factory=list)
    provisioned: ProvisionResult | None = None
    has_sudo: bool = True

    def to_dict(self) -> dict:
        return {
            "upgrade": self.upgrade,
            "platform": self.platform,
            "install_path": self.settings.install_path,
            "checks": self.checks,
            "provisioned": self.provisioned.to_dict() if self.provisioned else None,
        }


def run_install(
    config: DistConfig,
    upgrade: bool = False,
    explicit_platform: str | None = None,
    skip_datastores: Iterable[str] = (),
    provision: bool = True,
    context: BuildContext | None = None,
    provisioner: UserGroupProvisioner | None = None,
) -> InstallResult:
    """Install (or upgrade) a built distribution on this machine.

    Args:
        config: Loaded distbuild.yml; ``config.install`` says where and as whom.
        upgrade: Run the upgrade hooks instead of the install ones.
        explicit_platform: Override the platform recorded in build.db.
        skip_datastores: Backends to leave out of the checks.
        provision: Create the service user and group.
        context: Pre-built context.
        provisioner: Pre-built provisioner.

    Raises:
        DistBuildError: The first thing that failed.
    """
    if context is None:
        require_build_metadata(config)
        context = create_context(config, explicit_platform)
    settings = config.install
    platform = context.platform

    checks = DependencyVerifier(context).verify("install", skip_set(config, skip_datastores))
    result = InstallResult(
        upgrade=upgrade,
        platform=platform.name,
        settings=settings,
        checks=checks,
        has_sudo=platform.has_sudo(),
    )

    if settings.ip_address and not platform.check_ip(settings.ip_address):
        raise ConfigError(
            f"IP address {settings.ip_address} is not bound to any local interface"
        )

    if provision and result.has_sudo:
        provisioner = provisioner or UserGroupProvisioner(platform)
        result.provisioned = provisioner.provision(
            ProvisionRequest(
                group_name=settings.group,
                user_name=settings.user,
                install_path=settings.install_path,
            )
        )
    elif provision:
        logger.info("Platform %s has no sudo; not creating user/group", platform.name)

    if upgrade:
        platform.finish_upgrade(settings)
    else:
        platform.finish_installation(settings)

    logger.info("%s complete on %s", "Upgrade" if upgrade else "Install", platform.name)
    return result


_RULE = "#####                                                         #####"
_EDGE = "###                                                             ###"


def post_install_message(name: str, settings: InstallSettings) -> str:
    """Banner printed after a fresh install."""
    title = f"{name} INSTALLATION COMPLETE"
    ip = settings.ip_address or settings.host_name
    return "\n".join([
        "",
        _RULE,
        _EDGE,
        title.center(len(_RULE)).rstrip(),
        _EDGE,
        _RULE,
        "",
        f"   Installed at   : {settings.install_path}",
        f"   Control script : {settings.install_path}/bin/{name}_ctl",
        f"   Config file    : {settings.install_path}/conf/{name}.conf",
        "",
        f"   Running on {ip} - http://{settings.host_name}:{settings.port}/",
        "",
    ])


def post_upgrade_message(name: str, settings: InstallSettings, has_sudo: bool = True) -> str:
    """Banner printed after an upgrade."""
    title = f"{name} UPGRADE COMPLETE"
    lines = [
        "",
        _RULE,
        _EDGE,
        title.center(len(_RULE)).rstrip(),
        _EDGE,
        _RULE,
        "",
        f"   Installed at:   {settings.install_path}",
        f"   Control script: {settings.install_path}/bin/{name}_ctl",
        f"   Config file:    {settings.install_path}/conf/{name}.conf",
        "",
    ]
    if has_sudo:
        ip = settings.ip_address or settings.host_name
        lines.append(f"Running on {ip} -- http://{settings.host_name}:{settings.port}/")
    else:
        lines.append(f"Start {name} with bin/{name}_ctl")
    lines.append("")
    return "\n".join(lines)
