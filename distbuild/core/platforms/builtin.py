"""
Built-in platform strategies.

Probes are deliberately conservative; anything they miss can be
selected with ``--platform <Name>`` or described in a platform.yml.
"""

from __future__ import annotations

import platform as _host
from pathlib import Path

from distbuild.core.models.metadata import RuntimeInfo
from distbuild.core.models.prompt import PromptRuleSet
from distbuild.core.platforms.base import PlatformStrategy


class Debian(PlatformStrategy):
    """Debian and derivatives (Ubuntu)."""

    name = "Debian"
    release_file = Path("/etc/debian_version")

    def guess_platform(self) -> bool:
        return self.release_file.is_file()

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        # multiarch layout: /usr/lib/x86_64-linux-gnu
        triplet = f"/usr/lib/{_host.machine()}-linux-gnu"
        paths = super().library_search_paths(runtime)
        if triplet not in paths:
            paths.append(triplet)
        return paths


class Redhat(PlatformStrategy):
    """Red Hat, CentOS and Fedora."""

    name = "Redhat"
    release_file = Path("/etc/redhat-release")

    def guess_platform(self) -> bool:
        return self.release_file.is_file()

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        paths = super().library_search_paths(runtime)
        for extra in ("/usr/lib64", "/lib64"):
            if extra not in paths:
                paths.append(extra)
        return paths


class FreeBSD(PlatformStrategy):
    """FreeBSD: ports live under /usr/local and accounts are managed with pw(8)."""

    name = "FreeBSD"

    def guess_platform(self) -> bool:
        return _host.system() == "FreeBSD"

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        paths = super().library_search_paths(runtime)
        if "/usr/local/lib" not in paths:
            paths.append("/usr/local/lib")
        return paths

    def skip_packages(self) -> list[str]:
        # BSD::Resource is wanted here
        return []

    def group_add_command(self, group: str) -> list[str]:
        return ["pw", "groupadd", group]

    def user_add_command(self, user: str, gid: int, home_dir: str) -> list[str]:
        return ["pw", "useradd", user, "-d", home_dir, "-g", str(gid)]

    def membership_command(self, user: str, group: str) -> list[str]:
        return ["pw", "groupmod", group, "-m", user]


class MacOSX(PlatformStrategy):
    """macOS with MacPorts libraries under /opt/local."""

    name = "MacOSX"

    def guess_platform(self) -> bool:
        return _host.system() == "Darwin"

    def library_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        paths = super().library_search_paths(runtime)
        for extra in ("/opt/local/lib", "/usr/local/lib"):
            if extra not in paths:
                paths.append(extra)
        return paths

    def header_search_paths(self, runtime: RuntimeInfo) -> list[str]:
        return super().header_search_paths(runtime) + ["/opt/local/include"]

    def module_prompts(self) -> PromptRuleSet:
        return super().module_prompts().merged(
            {"Where is libgd installed? [/usr/lib]": "/opt/local/lib"}
        )

    def group_add_command(self, group: str) -> list[str]:
        return ["dseditgroup", "-o", "create", group]

    def user_add_command(self, user: str, gid: int, home_dir: str) -> list[str]:
        return ["sysadminctl", "-addUser", user, "-home", home_dir, "-GID", str(gid)]

    def membership_command(self, user: str, group: str) -> list[str]:
        return ["dseditgroup", "-o", "edit", "-a", user, "-t", "user", group]


BUILTIN_PLATFORMS: tuple[type[PlatformStrategy], ...] = (Debian, FreeBSD, MacOSX, Redhat)
