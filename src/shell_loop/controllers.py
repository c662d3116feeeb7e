"""Controller turning CLI input into a configured loop run."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta

from shell_loop.config import LoopSettings
from shell_loop.engine.backend import ShellCommandExecutor
from shell_loop.engine.counter import LoopCounter
from shell_loop.engine.driver import LoopDriver, LoopOutcome
from shell_loop.engine.environment import EnvironmentSetter, ProcessEnvironment, SpawnEnvironment
from shell_loop.engine.evaluator import OutputEvaluator, PrintSink
from shell_loop.engine.models import StopConditions
from shell_loop.engine.step import LoopModel
from shell_loop.engine.supervisor import DetachSupervisor
from shell_loop.parsing import (
    LoopConfigError,
    count_precision,
    parse_duration,
    parse_number,
    parse_until_error,
    parse_until_time,
    split_items,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LoopRunCommand:
    """CLI input for one loop invocation, still in raw string form."""

    command: tuple[str, ...]
    num: str | None = None
    count_by: str = "1"
    offset: str = "0"
    every: str | None = None
    for_items: str | None = None
    for_duration: str | None = None
    until_contains: str | None = None
    until_match: str | None = None
    until_time: str | None = None
    until_error: str | None = None
    until_success: bool = False
    until_fail: bool = False
    until_changes: bool = False
    until_same: bool = False
    only_last: bool = False
    stdin: bool = False
    error_duration: bool = False
    summary: bool = False
    detach: bool = False


@dataclass(slots=True)
class LoopPlan:
    """Validated loop configuration ready to execute."""

    command_line: str
    conditions: StopConditions
    counter: LoopCounter
    count_precision: int
    every: timedelta | None


class LoopCliController:
    """Validates CLI input and runs the loop engine."""

    def __init__(self, settings: LoopSettings | None = None) -> None:
        self.settings = settings or LoopSettings()

    def plan(self, command: LoopRunCommand, stdin_lines: Iterable[str] = ()) -> LoopPlan:
        """Parse every option up front; raises ``LoopConfigError`` before any run."""

        command_line = " ".join(command.command)
        if not command_line.strip():
            raise LoopConfigError("No command supplied, exiting.")

        items = split_items(command.for_items) if command.for_items is not None else []
        if command.stdin:
            items.extend(line.rstrip("\r\n") for line in stdin_lines)

        step_size = parse_number(command.count_by, option="--count-by")
        counter = LoopCounter(
            offset=parse_number(command.offset, option="--offset"),
            step_size=step_size,
            count=parse_number(command.num, option="--num") if command.num is not None else None,
            items=items,
        )

        every = parse_duration(command.every, option="--every") if command.every else None
        conditions = StopConditions(
            until_contains=command.until_contains,
            until_match=_compile_regex(command.until_match),
            until_time=parse_until_time(command.until_time) if command.until_time else None,
            for_duration=(
                parse_duration(command.for_duration, option="--for-duration")
                if command.for_duration
                else None
            ),
            error_duration=command.error_duration,
            until_error=(
                parse_until_error(command.until_error) if command.until_error is not None else None
            ),
            until_success=command.until_success,
            until_fail=command.until_fail,
            until_changes=command.until_changes,
            until_same=command.until_same,
            only_last=command.only_last,
            summary=command.summary,
        )
        return LoopPlan(
            command_line=command_line,
            conditions=conditions,
            counter=counter,
            count_precision=count_precision(command.count_by),
            every=every,
        )

    def run(
        self,
        command: LoopRunCommand,
        *,
        sink: PrintSink,
        stdin_lines: Iterable[str] = (),
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> LoopOutcome:
        """Plan and execute the loop, printing command output through ``sink``."""

        # the duration budget includes reading stdin items
        program_start = monotonic()
        plan = self.plan(command, stdin_lines)
        logger.debug("Looping %r (detach=%s)", plan.command_line, command.detach)

        environment: EnvironmentSetter
        supervisor: DetachSupervisor | None = None
        if command.detach:
            environment = SpawnEnvironment(count_precision=plan.count_precision)
            supervisor = DetachSupervisor(lambda: ShellCommandExecutor(shell=self.settings.shell))
        else:
            environment = ProcessEnvironment(count_precision=plan.count_precision)

        with ShellCommandExecutor(shell=self.settings.shell) as executor:
            model = LoopModel(
                command_line=plan.command_line,
                conditions=plan.conditions,
                environment=environment,
                runner=executor,
                evaluator=OutputEvaluator(plan.conditions, sink),
                program_start=program_start,
                monotonic=monotonic,
            )
            driver = LoopDriver(
                counter=plan.counter,
                model=model,
                every=plan.every,
                supervisor=supervisor,
                sleep=sleep,
                monotonic=monotonic,
            )
            try:
                return driver.run()
            finally:
                if self.settings.restore_env:
                    environment.restore()


def _compile_regex(pattern: str | None) -> re.Pattern[str] | None:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as error:
        raise LoopConfigError(f"Bad --until-match: {pattern!r}: {error}") from error
