"""Per-tick step logic shared by the synchronous and detached drivers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from shell_loop.engine.backend import CommandRunner
from shell_loop.engine.environment import EnvironmentSetter
from shell_loop.engine.evaluator import OutputEvaluator, deadline_reached, should_stop
from shell_loop.engine.models import (
    TIMEOUT,
    CapturedOutput,
    DetachResponse,
    IterationContext,
    RunState,
    StopConditions,
)

if TYPE_CHECKING:
    from shell_loop.engine.supervisor import DetachSupervisor

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class LoopModel:
    """Runs one iteration and decides whether the loop stops.

    Collaborators (environment setter, command runner, output evaluator) are
    injected so tests can substitute in-memory fakes.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        command_line: str,
        conditions: StopConditions,
        environment: EnvironmentSetter,
        runner: CommandRunner,
        evaluator: OutputEvaluator,
        program_start: float | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.command_line = command_line
        self.conditions = conditions
        self.environment = environment
        self.runner = runner
        self.evaluator = evaluator
        self._monotonic = monotonic
        self._now = now
        self.program_start = monotonic() if program_start is None else program_start

    def step(self, state: RunState, context: IterationContext) -> tuple[bool, RunState]:
        """Run one synchronous tick: env, deadlines, command, predicates, summary."""

        env = self.environment.apply(context)
        if self._deadline_tripped(state):
            return True, state

        result = self.runner.run(self.command_line, env)
        stop = self._conclude(state, result, state.previous_output)
        return stop, state

    def step_detached(
        self,
        state: RunState,
        context: IterationContext,
        supervisor: DetachSupervisor,
    ) -> tuple[bool, RunState]:
        """Detached tick: absorb finished runs, then dispatch without waiting."""

        env = self.environment.apply(context)
        if self._deadline_tripped(state):
            return True, state

        while (response := supervisor.poll()) is not None:
            if self.absorb(state, response):
                return True, state

        sequence_number = supervisor.submit(self.command_line, env)
        logger.debug("Dispatched run #%d (tick %d)", sequence_number, context.index)
        return False, state

    def absorb(
        self,
        state: RunState,
        response: DetachResponse,
        *,
        after_stop: bool = False,
    ) -> bool:
        """Evaluate a detached result; comparisons use the previously received one.

        With ``after_stop`` the loop has already stopped: the run is printed and
        counted in the summary only, so the stopping run keeps its held line.
        """

        if response.error is not None:
            raise response.error
        if response.result is None:
            raise RuntimeError(f"Detached run #{response.sequence_number} returned no result")
        if after_stop:
            self.evaluator.forward(response.result.text)
            if self.conditions.summary:
                state.summary.record(response.result.exit_code)
            return True
        return self._conclude(state, response.result, response.prior_result)

    def _deadline_tripped(self, state: RunState) -> bool:
        elapsed = timedelta(seconds=self._monotonic() - self.program_start)
        check = deadline_reached(conditions=self.conditions, elapsed=elapsed, now=self._now())
        if not check.stop:
            return False
        if check.timed_out:
            state.exit_code = TIMEOUT
        logger.debug("Deadline reached after %.3fs", elapsed.total_seconds())
        return True

    def _conclude(
        self,
        state: RunState,
        result: CapturedOutput,
        prior: CapturedOutput | bytes | None,
    ) -> bool:
        self.evaluator.evaluate(result.text, state)
        stop = should_stop(
            current=result,
            prior=prior,
            conditions=self.conditions,
            has_matched=state.has_matched,
        )
        if self.conditions.summary:
            state.summary.record(result.exit_code)
        if stop:
            state.stopped_on_result = True
        else:
            # changed/same compare against the output preceding the stopping run
            state.previous_output = result.data
        return stop
