"""Runner interface for looped command execution."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from shell_loop.engine.models import CapturedOutput


class CommandLaunchError(RuntimeError):
    """The command could not be started at all (shell missing, not executable)."""


class CommandRunner(Protocol):
    """Protocol implemented by command runners."""

    def run(self, command_line: str, env: Mapping[str, str] | None = None) -> CapturedOutput:
        """Run the command once and return its exit status and combined output."""
