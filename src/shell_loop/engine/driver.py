"""Driver loop: pull counter ticks, pace them, and run exit tasks."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from shell_loop.engine.counter import LoopCounter
from shell_loop.engine.models import ExitCode, RunState
from shell_loop.engine.step import LoopModel
from shell_loop.engine.supervisor import DetachSupervisor

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LoopOutcome:
    """Final exit code and state after the loop ends."""

    exit_code: ExitCode
    state: RunState
    ticks: int


class LoopDriver:
    """Drives ``LoopModel`` once per counter tick until exhaustion or stop."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        counter: LoopCounter,
        model: LoopModel,
        every: timedelta | None = None,
        supervisor: DetachSupervisor | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.counter = counter
        self.model = model
        self.every = every
        self.supervisor = supervisor
        self._sleep = sleep
        self._monotonic = monotonic

    def run(self) -> LoopOutcome:
        state = RunState()
        ticks = 0
        if self.supervisor is not None:
            self.supervisor.start()
        try:
            for context in self.counter:
                ticks += 1
                tick_start = self._monotonic()
                if self.supervisor is None:
                    stop, state = self.model.step(state, context)
                else:
                    stop, state = self.model.step_detached(state, context, self.supervisor)

                if stop:
                    logger.debug("Stop condition met on tick %d", context.index)
                    break
                if not context.is_last:
                    self._pace(tick_start)
        except BaseException:
            if self.supervisor is not None:
                self.supervisor.shutdown()
            raise

        self._finish_detached(state)
        self._exit_tasks(state)
        return LoopOutcome(exit_code=state.exit_code, state=state, ticks=ticks)

    def _pace(self, tick_start: float) -> None:
        if self.every is None:
            return
        remaining = self.every.total_seconds() - (self._monotonic() - tick_start)
        # catch-up never: an overrun tick is not compensated later
        if remaining > 0:
            self._sleep(remaining)

    def _finish_detached(self, state: RunState) -> None:
        if self.supervisor is None:
            return
        pending = self.supervisor.shutdown()
        logger.debug("Absorbing %d outstanding detached runs", len(pending))
        for response in pending:
            self.model.absorb(state, response, after_stop=state.stopped_on_result)

    def _exit_tasks(self, state: RunState) -> None:
        evaluator = self.model.evaluator
        evaluator.emit_held()
        if self.model.conditions.summary:
            for line in state.summary.report():
                evaluator.sink(line)
