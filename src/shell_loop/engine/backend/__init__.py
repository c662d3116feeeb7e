"""Command runner implementations."""

from shell_loop.engine.backend.base import CommandLaunchError, CommandRunner
from shell_loop.engine.backend.shell_backend import DEFAULT_SHELL, ShellCommandExecutor

__all__ = [
    "DEFAULT_SHELL",
    "CommandLaunchError",
    "CommandRunner",
    "ShellCommandExecutor",
]
