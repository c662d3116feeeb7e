"""Iteration counter producing one context per loop tick."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence

from shell_loop.engine.models import IterationContext

LAST_TICK_TOLERANCE = 0.01


class LoopCounter:
    """Float counter bounded by an explicit count, the item list, or nothing.

    Counters are floating point so that fractional ``--count-by`` steps work;
    the last-tick check therefore compares within ``LAST_TICK_TOLERANCE``.
    """

    def __init__(
        self,
        *,
        offset: float = 0.0,
        step_size: float = 1.0,
        count: float | None = None,
        items: Sequence[str] = (),
    ) -> None:
        self.items = tuple(items)
        if count is not None:
            self.bound = float(count)
        elif self.items:
            self.bound = float(len(self.items))
        else:
            self.bound = math.inf
        self.step_size = step_size
        self.cursor = offset - step_size
        self.ticks_emitted = 0.0

    def advance(self) -> IterationContext | None:
        """Move one tick forward; None once the bound is exceeded."""

        self.cursor += self.step_size
        self.ticks_emitted += 1.0
        if self.ticks_emitted > self.bound:
            return None

        index = int(self.ticks_emitted) - 1
        item = self.items[index] if index < len(self.items) else None
        return IterationContext(
            index=index,
            scaled_count=self.cursor,
            item=item,
            is_last=abs((self.ticks_emitted - 1) - (self.bound - 1)) < LAST_TICK_TOLERANCE,
        )

    def __iter__(self) -> Iterator[IterationContext]:
        while (context := self.advance()) is not None:
            yield context
