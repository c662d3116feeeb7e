"""Iteration and stop-condition engine for the loop command."""

from shell_loop.engine.counter import LoopCounter
from shell_loop.engine.driver import LoopDriver, LoopOutcome
from shell_loop.engine.evaluator import OutputEvaluator, deadline_reached, should_stop
from shell_loop.engine.models import (
    CapturedOutput,
    ExitCode,
    ExitKind,
    IterationContext,
    RunState,
    StopConditions,
    Summary,
    UntilError,
)
from shell_loop.engine.step import LoopModel
from shell_loop.engine.supervisor import DetachSupervisor

__all__ = [
    "CapturedOutput",
    "DetachSupervisor",
    "ExitCode",
    "ExitKind",
    "IterationContext",
    "LoopCounter",
    "LoopDriver",
    "LoopModel",
    "LoopOutcome",
    "OutputEvaluator",
    "RunState",
    "StopConditions",
    "Summary",
    "UntilError",
    "deadline_reached",
    "should_stop",
]
