"""
Platform strategy base — the contract between the orchestrator and a platform.

A platform strategy is the pluggable behaviour set for one operating
environment: which native libraries to look for and where, how to order
and parameterise package builds, which prompts to answer, and how to
create OS users and groups.  Every override point has a working default
so a new platform only overrides what actually differs.

To create a new platform:
    1. Subclass PlatformStrategy, set ``name``
    2. Implement ``guess_platform`` (err on the side of False: the
       operator can always name the platform explicitly)
    3. Override whatever differs
    4. Register it in the PlatformRegistry (or ship a platform.yml)
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.models.config import InstallSettings
from distbuild.core.models.dependency import DependencyCheckSpec
from distbuild.core.models.metadata import RuntimeInfo
from distbuild.core.models.package import BuildToolKind, PackageOverride
from distbuild.core.models.prompt import PromptRuleSet

logger = logging.getLogger(__name__)

# Answers for the prompts CPAN distributions are known to ask during
# configure/make.  Additions are made as new packages are bundled.
DEFAULT_MODULE_PROMPTS: dict[str, str] = {
    "ParserDetails.ini?": "n",
    "remove gif support?": "n",
    "mech-dump utility?": "n",
    "configuration (y|n) ?": "n",
    "unicode entities?": "n",
    "Do you want to skip these tests?": "y",
    "('!' to skip)": "!",
    "Mail::Sender? (y/N)": "n",
    "requires access to an existing test database.": "n",
    "Do you want to build the XS Stash module?": "y",
    "Do you want to use the XS Stash": "y",
    "Do you want to enable the latex filter?": "n",
    "Do you want to install these components?": "n",
    "Do you wish to install the 'runtests' utility": "n",
    "Build PNG support? [y]": "y",
    "Build JPEG support? [y]": "n",
    "Build FreeType support? [y]": "n",
    "Build support for animated GIFs? [y]": "n",
    "Build XPM support? [y]": "n",
    "Where is libgd installed? [/usr/lib]": "/usr/lib",
    "Add Object::Deadly": "n",
    "prerequisites for testing": "no",
}

DEFAULT_APACHE_MODPERL_PROMPTS: dict[str, str] = {
    "Configure mod_perl with": "y",
    "Shall I build httpd": "n",
}

DEFAULT_PACKAGE_OVERRIDES: list[PackageOverride] = [
    PackageOverride(pattern="Net_SSLeay*", extra_args=["/usr", "--"]),
    PackageOverride(pattern="Net-FTPServer*", env={"NOCONF": "1"}),
    PackageOverride(pattern="libapreq*", env={"APXS": "{root}/apache/bin/apxs"}),
    PackageOverride(pattern="Apache-Test*", extra_args=["-httpd", "{root}/apache/bin/httpd"]),
]

_INET_ADDR = re.compile(r"inet\s+(?:addr:)?(\d+\.\d+\.\d+\.\d+)")

Runner = Callable[..., dict]


class PlatformStrategy:
    """Default behaviour shared by every platform."""

    name: str = ""

    def __init__(self, runner: Runner | None = None) -> None:
        self._run = runner or run_command

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

    # ── Detection ───────────────────────────────────────────────

    def guess_platform(self) -> bool:
        """Return True if this platform wants to handle the running system."""
        return False

    # ── Dependency checks ───────────────────────────────────────

    def dependency_checks(self, runtime: RuntimeInfo) -> list[DependencyCheckSpec]:
        """Native libraries every distribution needs, in check order."""
        core = f"{runtime.archlib}/CORE" if runtime.archlib else ""
        return [
            DependencyCheckSpec(
                name="libperl",
                shared_object_name="libperl",
                search_paths_headers=[core] if core else [],
                search_paths_libs=[core] if core else [],
            ),
            DependencyCheckSpec(
                name="libgd",
                header_file="gd.h",
                shared_object_name="libgd",
                owning_module_name="GD",
            ),
            DependencyCheckSpec(
                name="libssl",
                shared_object_name="libssl",
                owning_module_name="Net::SSLeay",
            ),
        ]

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        """Default directories searched for shared objects."""
        return list(runtime.libpth)

    def header_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        """Default directories searched for header files."""
        return [runtime.usrinc, "/include", "/usr/local/include"]

    def broken_install_helper_versions(self) -> set[str]:
        """ExtUtils::Install releases known to corrupt installs."""
        return {"1.42", "1.43"}

    # ── Package ordering (data, not code) ───────────────────────

    def first_packages(self) -> list[str]:
        """Build-tooling prerequisites, moved to the front."""
        return ["Module-Build", "Expect", "IO-Tty"]

    def last_packages(self) -> list[str]:
        """Database drivers, moved to the back."""
        return ["DBD-mysql", "DBD-SQLite"]

    def skip_packages(self) -> list[str]:
        """Packages not needed on this platform."""
        return ["BSD-*"]

    def dev_packages(self) -> list[str]:
        """Packages only built for developer setups."""
        return []

    def non_interactive_packages(self) -> list[str]:
        """Packages built without the automaton (they bootstrap its prerequisites)."""
        return ["IO-Tty", "Expect"]

    def package_overrides(self) -> list[PackageOverride]:
        return [o.model_copy(deep=True) for o in DEFAULT_PACKAGE_OVERRIDES]

    # ── Prompts ─────────────────────────────────────────────────

    def module_prompts(self) -> PromptRuleSet:
        return PromptRuleSet.from_mapping(DEFAULT_MODULE_PROMPTS)

    def apache_modperl_prompts(self) -> PromptRuleSet:
        return PromptRuleSet.from_mapping(DEFAULT_APACHE_MODPERL_PROMPTS)

    # ── Build parameters ────────────────────────────────────────

    def build_parameters(
        self,
        kind: BuildToolKind,
        dest_dir: str,
        trash_dir: str,
        archname: str,
    ) -> list[str]:
        """Configure-step arguments that route installed files.

        Libraries land in ``dest_dir``; docs, scripts and binaries go
        to ``trash_dir`` which is discarded after the build.
        """
        if kind is BuildToolKind.DECLARATIVE_SCRIPT:
            return [
                "--install_path", f"lib={dest_dir}",
                "--install_path", f"libdoc={trash_dir}",
                "--install_path", f"script={trash_dir}",
                "--install_path", f"bin={trash_dir}",
                "--install_path", f"bindoc={trash_dir}",
                "--install_path", f"arch={dest_dir}/{archname}",
            ]
        return [
            f"LIB={dest_dir}",
            f"PREFIX={trash_dir}",
            "INSTALLMAN3DIR=none",
            "INSTALLMAN1DIR=none",
        ]

    def apache_build_parameters(self, root: str, debug: bool = False) -> list[str]:
        """Arguments for Apache's ``./configure``."""
        params = [
            f"--prefix={root}/apache",
            "--activate-module=src/modules/perl/libperl.a",
            "--disable-shared=perl",
            "--enable-module=rewrite", "--enable-shared=rewrite",
            "--enable-module=proxy", "--enable-shared=proxy",
            "--enable-module=mime_magic", "--enable-shared=mime_magic",
            "--enable-module=unique_id", "--enable-shared=unique_id",
            "--enable-module=expires",
            "--enable-module=headers",
            "--enable-module=so",
        ]
        if debug:
            params.append("--without-execstrip")
        return params

    def mod_perl_build_parameters(
        self,
        root: str,
        trash_dir: str,
        apache_dir: str,
        debug: bool = False,
    ) -> list[str]:
        """Arguments for mod_perl's ``Makefile.PL``."""
        params = [
            f"LIB={root}/lib",
            f"PREFIX={trash_dir}",
            f"APACHE_SRC={apache_dir}/src",
            "USE_APACI=1",
            "APACI_ARGS=--without-execstrip",
            "EVERYTHING=1",
        ]
        if debug:
            params.append("PERL_DEBUG=1")
        return params

    # ── Provisioning ────────────────────────────────────────────
    # The first element of each command is a utility name resolved
    # through UserGroupProvisioner.find_bin.

    def group_add_command(self, group: str) -> list[str]:
        return ["groupadd", group]

    def user_add_command(self, user: str, gid: int, home_dir: str) -> list[str]:
        return ["useradd", "-d", home_dir, "-M", user, "-g", str(gid)]

    def membership_command(self, user: str, group: str) -> list[str]:
        return ["usermod", "-a", "-G", group, user]

    def has_sudo(self) -> bool:
        return True

    # ── Install hooks ───────────────────────────────────────────

    def check_ip(self, ip: str) -> bool:
        """Return True if ``ip`` is bound to a local interface."""
        return ip in self.local_ip_addresses()

    def local_ip_addresses(self) -> list[str]:
        result = self._run(["ip", "-o", "-4", "addr", "show"])
        if not result["ok"]:
            result = self._run(["/sbin/ifconfig"])
        if not result["ok"]:
            logger.warning("Cannot list network interfaces: %s", result.get("error"))
            return []
        return _INET_ADDR.findall(result.get("stdout", ""))

    def finish_installation(self, options: InstallSettings) -> None:
        """Platform-specific steps after a fresh install (default: none)."""

    def finish_upgrade(self, options: InstallSettings) -> None:
        """Platform-specific steps after an upgrade (default: none)."""
