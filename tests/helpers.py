"""
Test doubles shared across the test modules.
"""

from __future__ import annotations

from distbuild.core.errors import AutomationError
from distbuild.core.platforms.base import PlatformStrategy


class RecordingRunner:
    """Stands in for run_command: records every call, returns canned results.

    ``results`` maps a command-line prefix to the dict returned for any
    command starting with it; everything else succeeds.
    """

    def __init__(self, results: dict[str, dict] | None = None) -> None:
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self._results = results or {}

    def __call__(self, cmd, **kwargs) -> dict:
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        line = " ".join(cmd)
        for prefix, result in self._results.items():
            if line.startswith(prefix):
                return result
        return {"ok": True, "returncode": 0, "stdout": ""}


class RecordingAutomaton:
    """Stands in for SubprocessAutomaton: records drives, never spawns."""

    def __init__(self, fail_in: str | None = None) -> None:
        self.drives: list[dict] = []
        self.fail_in = fail_in

    def drive(self, command, rules=None, env=None, cwd=None):
        self.drives.append({"command": list(command), "rules": rules, "env": env, "cwd": cwd})
        if self.fail_in and cwd and cwd.endswith(self.fail_in):
            raise AutomationError(" ".join(command), 2)
        return None


class StubPlatform(PlatformStrategy):
    name = "Stub"

    def __init__(self, runner=None, matches: bool = False) -> None:
        super().__init__(runner)
        self.matches = matches

    def guess_platform(self) -> bool:
        return self.matches
