"""Domain models for the loop engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class ExitKind(str, Enum):
    """Named exit statuses understood by the loop."""

    OKAY = "okay"
    ERROR = "error"
    MINOR_ERROR = "minor_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    OTHER = "other"


_KIND_TO_CODE = {
    ExitKind.OKAY: 0,
    ExitKind.ERROR: 1,
    ExitKind.MINOR_ERROR: 2,
    ExitKind.UNKNOWN: 99,
    ExitKind.TIMEOUT: 124,
}
_CODE_TO_KIND = {code: kind for kind, code in _KIND_TO_CODE.items()}


@dataclass(frozen=True, slots=True)
class ExitCode:
    """Process exit status; 0, 1, 2, 99 and 124 always decode to a named kind."""

    code: int

    @classmethod
    def of(cls, kind: ExitKind) -> ExitCode:
        if kind is ExitKind.OTHER:
            raise ValueError("ExitKind.OTHER has no canonical code; use ExitCode(code).")
        return cls(_KIND_TO_CODE[kind])

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitCode:
        """Map a subprocess return code; signal deaths become UNKNOWN."""

        if returncode < 0:
            return cls.of(ExitKind.UNKNOWN)
        return cls(returncode)

    @property
    def kind(self) -> ExitKind:
        return _CODE_TO_KIND.get(self.code, ExitKind.OTHER)

    @property
    def success(self) -> bool:
        return self.code == 0

    def __int__(self) -> int:
        return self.code


OKAY = ExitCode.of(ExitKind.OKAY)
ERROR = ExitCode.of(ExitKind.ERROR)
MINOR_ERROR = ExitCode.of(ExitKind.MINOR_ERROR)
TIMEOUT = ExitCode.of(ExitKind.TIMEOUT)
UNKNOWN = ExitCode.of(ExitKind.UNKNOWN)


@dataclass(frozen=True, slots=True)
class IterationContext:
    """Per-tick values exposed to the looped command."""

    index: int
    scaled_count: float
    item: str | None
    is_last: bool


@dataclass(frozen=True, slots=True)
class CapturedOutput:
    """Combined stdout/stderr of one command run."""

    exit_code: ExitCode
    data: bytes = b""

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class UntilError:
    """Exit-status trigger: any failure when ``code`` is None, else that exact code."""

    code: int | None = None

    def matches(self, exit_code: ExitCode) -> bool:
        if self.code is None:
            return not exit_code.success
        return exit_code.code == self.code


@dataclass(frozen=True, slots=True)
class StopConditions:
    """Stop predicates and output switches captured once at startup."""

    until_contains: str | None = None
    until_match: re.Pattern[str] | None = None
    until_time: datetime | None = None
    for_duration: timedelta | None = None
    error_duration: bool = False
    until_error: UntilError | None = None
    until_success: bool = False
    until_fail: bool = False
    until_changes: bool = False
    until_same: bool = False
    only_last: bool = False
    summary: bool = False


@dataclass(slots=True)
class Summary:
    """Success/failure tally across iterations."""

    success_count: int = 0
    failure_codes: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + len(self.failure_codes)

    def record(self, exit_code: ExitCode) -> None:
        if exit_code.success:
            self.success_count += 1
        else:
            self.failure_codes.append(int(exit_code))

    def report(self) -> list[str]:
        """Render the three-line summary block."""

        if self.failure_codes:
            codes = ", ".join(str(code) for code in self.failure_codes)
            failures = f"{len(self.failure_codes)} ({codes})"
        else:
            failures = "0"
        return [
            f"Total runs:\t{self.total}",
            f"Successes:\t{self.success_count}",
            f"Failures:\t{failures}",
        ]


@dataclass(slots=True)
class RunState:
    """Loop state threaded through every step; owned by the driver thread."""

    has_matched: bool = False
    previous_output: bytes | None = None
    summary: Summary = field(default_factory=Summary)
    exit_code: ExitCode = OKAY
    stopped_on_result: bool = False


@dataclass(frozen=True, slots=True)
class DetachRequest:
    """One command dispatch handed to a supervisor worker."""

    sequence_number: int
    command_line: str
    env: dict[str, str] | None = None


@dataclass(frozen=True, slots=True)
class DetachResponse:
    """Completed detached run plus the result that completed before it."""

    sequence_number: int
    result: CapturedOutput | None
    prior_result: CapturedOutput | None = None
    error: Exception | None = None
