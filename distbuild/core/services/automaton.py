"""
Subprocess automaton — drives interactive build tools to completion.

Spawns one child on a pseudo-terminal (pexpect), waits for its output
to contain any known prompt, answers it, and repeats until the child
closes its output.  The exit status alone decides success: prompts are
optional annotations, never requirements.

States:

    waiting-for-output ──match──▶ matched-writing-response ──▶ waiting-for-output
            │
            └──EOF (or timeout)──▶ terminated

With ``timeout=None`` (the default) a child that hangs without output
blocks forever.  Set ``prompt_timeout`` in distbuild.yml to bound it.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import pexpect

from distbuild.core.errors import AutomationError, AutomationTimeout
from distbuild.core.models.prompt import PromptRuleSet
from distbuild.core.observability.logging_config import BuildOutputWriter, build_log_enabled

logger = logging.getLogger(__name__)


class AutomatonState(str, Enum):
    WAITING = "waiting-for-output"
    RESPONDING = "matched-writing-response"
    TERMINATED = "terminated"


@dataclass
class AutomationResult:
    """Outcome of a successful drive."""

    command: str
    exit_code: int | None = None
    responses_sent: int = 0
    matched: list[str] = field(default_factory=list)
    transitions: list[AutomatonState] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "exit_code": self.exit_code,
            "responses_sent": self.responses_sent,
            "matched": self.matched,
            "transitions": [s.value for s in self.transitions],
        }


class RuleOrderSearcher(pexpect.searcher_string):
    """Literal-substring searcher that honours rule-set order.

    pexpect's own searcher prefers whichever trigger appears earliest
    in the output.  Here the first trigger *in rule order* that is
    present in the unread output wins.
    """

    def __init__(self, triggers: Sequence[str]) -> None:
        self._triggers = list(triggers)
        super().__init__(self._triggers + [pexpect.EOF, pexpect.TIMEOUT])

    def search(self, buffer: str, freshlen: int, searchwindowsize: int | None = None) -> int:
        for index, trigger in enumerate(self._triggers):
            start = buffer.find(trigger)
            if start >= 0:
                self.match = trigger
                self.start = start
                self.end = start + len(trigger)
                return index
        return -1


class SubprocessAutomaton:
    """Pattern-trigger / response automaton over a pseudo-terminal.

    Args:
        timeout: Seconds to wait for any output match before killing
            the child.  None waits forever.
        echo: Copy the child's output to stdout as it arrives.
        spawn: Factory for the child process (``pexpect.spawn``).
    """

    def __init__(
        self,
        timeout: float | None = None,
        echo: bool = False,
        spawn: Callable[..., Any] = pexpect.spawn,
    ) -> None:
        self.timeout = timeout
        self.echo = echo
        self._spawn = spawn

    def drive(
        self,
        command: str | Sequence[str],
        rules: PromptRuleSet | None = None,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> AutomationResult:
        """Run ``command`` to completion, answering prompts from ``rules``.

        Raises:
            AutomationError: The child exited non-zero, died on a signal,
                or could not be started.
            AutomationTimeout: ``timeout`` elapsed with no recognised output.
        """
        rules = rules or PromptRuleSet()
        display = command if isinstance(command, str) else " ".join(command)
        result = AutomationResult(command=display)
        searcher = RuleOrderSearcher(rules.triggers)

        output = self._output_writer(command)
        child = self._start(command, display, env, cwd, output)
        state = self._enter(result, AutomatonState.WAITING)

        try:
            while state is not AutomatonState.TERMINATED:
                index = child.expect_loop(searcher, timeout=self.timeout)

                if index == searcher.eof_index:
                    state = self._enter(result, AutomatonState.TERMINATED)

                elif index == searcher.timeout_index:
                    logger.error("%s: no recognised output for %ss, killing it", display, self.timeout)
                    child.close(force=True)
                    self._enter(result, AutomatonState.TERMINATED)
                    raise AutomationTimeout(display, self.timeout, result.responses_sent)

                else:
                    self._enter(result, AutomatonState.RESPONDING)
                    trigger = rules.triggers[index]
                    response = rules.response_for(index)
                    logger.debug("%s: prompt %r → %r", display, trigger, response)
                    child.sendline(response)
                    result.responses_sent += 1
                    result.matched.append(trigger)
                    state = self._enter(result, AutomatonState.WAITING)
        finally:
            if output is not None:
                output.close()

        result.exit_code = self._reap(child)
        logger.debug(
            "%s exited %s after %d responses", display, result.exit_code, result.responses_sent,
        )
        if result.exit_code != 0:
            raise AutomationError(display, result.exit_code, result.responses_sent)
        return result

    # ── Internals ───────────────────────────────────────────────

    def _start(
        self,
        command: str | Sequence[str],
        display: str,
        env: dict[str, str] | None,
        cwd: str | None,
        output: BuildOutputWriter | None = None,
    ) -> Any:
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        if isinstance(command, str):
            program, args = command, []
        else:
            program, args = command[0], list(command[1:])

        logger.info("Running %s", display)
        try:
            child = self._spawn(
                program,
                args,
                env=full_env,
                cwd=cwd,
                encoding="utf-8",
                codec_errors="replace",
            )
        except pexpect.ExceptionPexpect as e:
            raise AutomationError(display, None, message=f"Cannot start {display}: {e}") from e

        if output is not None:
            child.logfile_read = output
        return child

    def _output_writer(self, command: str | Sequence[str]) -> BuildOutputWriter | None:
        if not (self.echo or build_log_enabled()):
            return None
        words = [command] if isinstance(command, str) else list(command[:2])
        source = " ".join([os.path.basename(words[0]), *words[1:]])
        return BuildOutputWriter(source, echo=sys.stdout if self.echo else None)

    @staticmethod
    def _enter(result: AutomationResult, state: AutomatonState) -> AutomatonState:
        result.transitions.append(state)
        return state

    @staticmethod
    def _reap(child: Any) -> int | None:
        child.wait()
        child.close()
        if child.signalstatus is not None:
            return -child.signalstatus
        return child.exitstatus
