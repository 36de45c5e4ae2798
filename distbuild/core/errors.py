"""
Error taxonomy — every failure that stops a build or install.

All errors are terminal for the current top-level operation. There is
no retry anywhere: the CLI prints the message and exits non-zero.
"""

from __future__ import annotations

from typing import Sequence


class DistBuildError(Exception):
    """Base class for every error raised by the orchestrator."""


# ── Configuration ───────────────────────────────────────────────


class ConfigError(DistBuildError):
    """Raised when distbuild.yml is invalid or unreadable."""


# ── Platform resolution ─────────────────────────────────────────


class PlatformError(DistBuildError):
    """Base for platform resolution failures."""


class UnknownPlatform(PlatformError):
    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        self.reason = reason
        msg = f"Unable to load platform module '{name}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StalePlatformRecord(PlatformError):
    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        self.reason = reason
        msg = (
            f"This distribution was built for platform '{name}', "
            "which can no longer be loaded"
        )
        if reason:
            msg += f": {reason}"
        msg += ". Rebuild, or pass --platform explicitly."
        super().__init__(msg)


class NoPlatformMatched(PlatformError):
    def __init__(self, candidates: Sequence[str]) -> None:
        self.candidates = list(candidates)
        tried = ", ".join(self.candidates) or "(none)"
        super().__init__(
            f"No platform module recognised this system (tried: {tried}). "
            "Specify one with --platform."
        )


# ── Dependency verification ─────────────────────────────────────


class DependencyError(DistBuildError):
    """Base for dependency check failures."""


class MissingBuildMetadata(DependencyError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"No build metadata found at {path}. "
            "This distribution has not been built yet."
        )


class RuntimeMismatch(DependencyError):
    def __init__(self, expected: str | None, actual: str, field: str = "version") -> None:
        self.expected = expected
        self.actual = actual
        self.field = field
        if field == "architecture":
            msg = (
                f"This distribution is compiled for the '{expected}' architecture, "
                f"but your perl is compiled for '{actual}'. Download a different "
                "distribution or rebuild your perl installation."
            )
        else:
            msg = (
                f"This distribution is compiled for perl version '{expected}', "
                f"but you have '{actual}' installed. Install the expected version "
                "of perl or download a different release."
            )
        super().__init__(msg)


class DatastoreUnavailable(DependencyError):
    def __init__(self, backend: str, detail: str = "") -> None:
        self.backend = backend
        self.detail = detail
        msg = f"Datastore backend '{backend}' is unavailable"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class MissingLibrary(DependencyError):
    def __init__(self, name: str, searched: Sequence[str] = ()) -> None:
        self.name = name
        self.searched = list(searched)
        msg = f"{name} is missing from your system or could not be found."
        if self.searched:
            msg += f" Searched: {', '.join(self.searched)}."
        msg += " This library is required."
        super().__init__(msg)


class MissingHeader(DependencyError):
    def __init__(self, name: str, header: str, module: str | None = None) -> None:
        self.name = name
        self.header = header
        self.module = module
        msg = f"The header file for {name}, '{header}', is missing from your system or could not be found."
        if module:
            msg += f" This file is needed to compile the {module} module which uses {name}."
        super().__init__(msg)


class BrokenToolchain(DependencyError):
    def __init__(self, version: str, minimum: str = "1.44") -> None:
        self.version = version
        self.minimum = minimum
        super().__init__(
            f"You have a broken version of ExtUtils::Install ({version}). "
            f"Please upgrade to {minimum} or greater."
        )


# ── Subprocess automation ───────────────────────────────────────


class AutomationError(DistBuildError):
    def __init__(
        self,
        command: str,
        exit_code: int | None,
        responses_sent: int = 0,
        message: str | None = None,
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.responses_sent = responses_sent
        super().__init__(message or f"{command} failed (exit {exit_code})")


class AutomationTimeout(AutomationError):
    def __init__(self, command: str, timeout: float, responses_sent: int = 0) -> None:
        self.timeout = timeout
        super().__init__(
            command,
            None,
            responses_sent,
            message=f"{command} produced no recognised output for {timeout}s and was killed",
        )


# ── Package builds ──────────────────────────────────────────────


class BuildError(DistBuildError):
    def __init__(self, package: str, step: str, detail: str = "") -> None:
        self.package = package
        self.step = step
        self.detail = detail
        msg = f"Building {package} failed during {step}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


# ── Provisioning ────────────────────────────────────────────────


class ProvisioningFailed(DistBuildError):
    def __init__(self, entity: str, name: str, detail: str = "") -> None:
        self.entity = entity
        self.name = name
        self.detail = detail
        msg = f"Can't provision {entity} '{name}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
