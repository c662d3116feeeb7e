"""Subprocess-based runner executing the looped command through a shell."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Mapping
from typing import IO

from shell_loop.engine.backend.base import CommandLaunchError
from shell_loop.engine.models import CapturedOutput, ExitCode

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"


class ShellCommandExecutor:
    """Run a command line via ``<shell> -c`` capturing stdout+stderr in one buffer.

    The buffer is a single temporary file truncated and rewound before every
    run, so memory use does not grow with the number of iterations.
    """

    def __init__(self, *, shell: str = DEFAULT_SHELL) -> None:
        self.shell = shell
        self._buffer: IO[bytes] | None = None

    def __enter__(self) -> ShellCommandExecutor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._buffer is not None:
            self._buffer.close()
            self._buffer = None

    def run(self, command_line: str, env: Mapping[str, str] | None = None) -> CapturedOutput:
        buffer = self._rewind_buffer()
        try:
            process = subprocess.Popen(  # noqa: S603
                [self.shell, "-c", command_line],
                stdout=buffer,
                stderr=subprocess.STDOUT,
                env=dict(env) if env is not None else None,
            )
        except OSError as error:
            raise CommandLaunchError(f"Failed to start {self.shell!r}: {error}") from error

        returncode = process.wait()
        exit_code = ExitCode.from_returncode(returncode)
        if returncode < 0:
            logger.warning(
                "Command terminated abnormally (signal %d): %s", -returncode, command_line
            )

        buffer.seek(0)
        return CapturedOutput(exit_code=exit_code, data=buffer.read())

    def _rewind_buffer(self) -> IO[bytes]:
        if self._buffer is None:
            self._buffer = tempfile.TemporaryFile()  # noqa: SIM115
        self._buffer.seek(0)
        self._buffer.truncate(0)
        return self._buffer
