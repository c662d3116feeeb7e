"""Expose per-iteration values to the looped command as environment variables."""

from __future__ import annotations

import os
from collections.abc import MutableMapping
from typing import Protocol

from shell_loop.engine.models import IterationContext

ITEM_VAR = "ITEM"
# COUNT carries the scaled counter and ACTUALCOUNT the raw tick index.
# The names are inverted relative to their meaning and must stay that way.
COUNT_VAR = "COUNT"
ACTUAL_COUNT_VAR = "ACTUALCOUNT"
LOOP_VARS = (ITEM_VAR, COUNT_VAR, ACTUAL_COUNT_VAR)


def loop_variables(context: IterationContext, count_precision: int) -> dict[str, str | None]:
    """Variables for one tick; ``None`` marks a variable that must be unset."""

    return {
        ITEM_VAR: context.item,
        COUNT_VAR: f"{context.scaled_count:.{count_precision}f}",
        ACTUAL_COUNT_VAR: str(context.index),
    }


class EnvironmentSetter(Protocol):
    """Capability applying an iteration context before the command runs."""

    def apply(self, context: IterationContext) -> dict[str, str] | None:
        """Return an explicit child environment, or None when the process env was updated."""

    def restore(self) -> None:
        """Undo any process-wide changes made by ``apply``."""


class ProcessEnvironment:
    """Write loop variables into the process environment before each run.

    Only safe when a single command runs at a time. ``restore`` puts back
    whatever values the variables had before the first ``apply``.
    """

    def __init__(
        self,
        *,
        count_precision: int = 0,
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        self.count_precision = count_precision
        self._environ = os.environ if environ is None else environ
        self._saved: dict[str, str | None] | None = None

    def apply(self, context: IterationContext) -> None:
        if self._saved is None:
            self._saved = {name: self._environ.get(name) for name in LOOP_VARS}
        _update(self._environ, loop_variables(context, self.count_precision))

    def restore(self) -> None:
        if self._saved is None:
            return
        _update(self._environ, self._saved)
        self._saved = None


class SpawnEnvironment:
    """Build a complete child environment per run, leaving ``os.environ`` alone."""

    def __init__(
        self,
        *,
        count_precision: int = 0,
        base: MutableMapping[str, str] | None = None,
    ) -> None:
        self.count_precision = count_precision
        self._base = os.environ if base is None else base

    def apply(self, context: IterationContext) -> dict[str, str]:
        env = dict(self._base)
        _update(env, loop_variables(context, self.count_precision))
        return env

    def restore(self) -> None:
        """Nothing to undo; present so callers can treat both setters alike."""


def _update(target: MutableMapping[str, str], values: dict[str, str | None]) -> None:
    for name, value in values.items():
        if value is None:
            target.pop(name, None)
        else:
            target[name] = value
