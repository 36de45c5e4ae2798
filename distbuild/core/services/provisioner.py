"""
User/group provisioner — makes sure the service account exists.

Every operation looks in the OS account database first and only runs
an account-management utility when something is missing, so running an
install twice changes nothing the second time.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, NamedTuple

from distbuild.core.errors import ProvisioningFailed
from distbuild.core.execution.subprocess_runner import run_command
from distbuild.core.models.provision import ProvisionRequest
from distbuild.core.platforms.base import PlatformStrategy

logger = logging.getLogger(__name__)

FALLBACK_BIN_DIRS = ("/sbin", "/usr/sbin")


class GroupEntry(NamedTuple):
    gid: int
    members: list[str]


class UserEntry(NamedTuple):
    uid: int
    gid: int


class AccountDatabase:
    """Read-only view of the system group and password databases."""

    def group(self, name: str) -> GroupEntry | None:
        try:
            entry = grp.getgrnam(name)
        except KeyError:
            return None
        return GroupEntry(entry.gr_gid, list(entry.gr_mem))

    def user(self, name: str) -> UserEntry | None:
        try:
            entry = pwd.getpwnam(name)
        except KeyError:
            return None
        return UserEntry(entry.pw_uid, entry.pw_gid)


@dataclass
class ProvisionResult:
    gid: int
    uid: int
    membership_added: bool = False

    def to_dict(self) -> dict:
        return {"gid": self.gid, "uid": self.uid, "membership_added": self.membership_added}


class UserGroupProvisioner:
    """Idempotently creates the group, the user, and the membership between them.

    Args:
        platform: Supplies the command lines (groupadd, pw, dseditgroup ...).
        runner: Runs the utilities (``run_command``).
        accounts: Account database lookups.
        path_env: PATH to search for utilities (defaults to ``$PATH``).
    """

    def __init__(
        self,
        platform: PlatformStrategy,
        runner: Callable[..., dict] = run_command,
        accounts: AccountDatabase | None = None,
        path_env: str | None = None,
    ) -> None:
        self.platform = platform
        self._run = runner
        self.accounts = accounts or AccountDatabase()
        self._path_env = path_env

    def find_bin(self, name: str) -> str:
        """Locate a utility on PATH, then in /sbin and /usr/sbin.

        Raises:
            ProvisioningFailed: If the utility isn't in any of them.
        """
        path_env = self._path_env if self._path_env is not None else os.environ.get("PATH", "")
        dirs = [d for d in path_env.split(os.pathsep) if d]
        dirs += [d for d in FALLBACK_BIN_DIRS if d not in dirs]

        for directory in dirs:
            candidate = Path(directory) / name
            if candidate.exists():
                return str(candidate)

        raise ProvisioningFailed(
            "utility", name, f"not found in PATH={os.pathsep.join(dirs)}",
        )

    def ensure_group(self, group: str) -> int:
        """Return the gid of ``group``, creating the group if needed."""
        existing = self.accounts.group(group)
        if existing is not None:
            logger.info("Group %s already exists (gid %d)", group, existing.gid)
            return existing.gid

        self._execute("group", group, self.platform.group_add_command(group))
        created = self.accounts.group(group)
        if created is None:
            raise ProvisioningFailed("group", group, "still missing after creation")
        logger.info("Group %s created (gid %d)", group, created.gid)
        return created.gid

    def ensure_user(self, user: str, gid: int, home_dir: str) -> int:
        """Return the uid of ``user``, creating it with primary group ``gid`` if needed."""
        existing = self.accounts.user(user)
        if existing is not None:
            logger.info("User %s already exists (uid %d)", user, existing.uid)
            return existing.uid

        self._execute("user", user, self.platform.user_add_command(user, gid, home_dir))
        created = self.accounts.user(user)
        if created is None:
            raise ProvisioningFailed("user", user, "still missing after creation")
        logger.info("User %s created (uid %d)", user, created.uid)
        return created.uid

    def ensure_membership(self, user: str, group: str) -> bool:
        """Make ``user`` a member of ``group``.

        Returns:
            True if membership had to be added, False if it was already there.
        """
        group_entry = self.accounts.group(group)
        user_entry = self.accounts.user(user)
        if group_entry is None:
            raise ProvisioningFailed("group", group, "does not exist")
        if user_entry is None:
            raise ProvisioningFailed("user", user, "does not exist")

        if user in group_entry.members or user_entry.gid == group_entry.gid:
            logger.debug("User %s is already in group %s", user, group)
            return False

        self._execute("membership", f"{user}:{group}", self.platform.membership_command(user, group))
        logger.info("Added user %s to group %s", user, group)
        return True

    def provision(self, request: ProvisionRequest) -> ProvisionResult:
        """Group, then user, then membership."""
        gid = self.ensure_group(request.group_name)
        uid = self.ensure_user(request.user_name, gid, request.install_path)
        added = self.ensure_membership(request.user_name, request.group_name)
        return ProvisionResult(gid=gid, uid=uid, membership_added=added)

    def _execute(self, entity: str, name: str, cmd: list[str]) -> None:
        program = self.find_bin(cmd[0])
        full = [program, *cmd[1:]]
        logger.info("Running %s", " ".join(full))
        result = self._run(full)
        if not result["ok"]:
            detail = (result.get("stderr") or "").strip() or result.get("error", "")
            raise ProvisioningFailed(entity, name, detail)
