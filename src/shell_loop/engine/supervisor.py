"""Detach-mode supervisor: run commands on worker threads, report via a queue."""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from shell_loop.engine.backend import CommandRunner
from shell_loop.engine.models import CapturedOutput, DetachRequest, DetachResponse

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[], CommandRunner]

_SHUTDOWN = object()


@dataclass(slots=True)
class _Finished:
    request: DetachRequest
    result: CapturedOutput | None
    error: Exception | None = None


class DetachSupervisor:
    """Owns one worker thread per in-flight request and a result queue.

    The driver is the only reader of ``results``; workers never touch it
    directly. They post to the supervisor inbox, and the supervisor thread
    attaches the previously completed result before forwarding. There is no
    admission control: every ``submit`` starts a new thread.
    """

    def __init__(self, runner_factory: RunnerFactory) -> None:
        self._runner_factory = runner_factory
        self._inbox: queue.Queue[DetachRequest | _Finished | object] = queue.Queue()
        self.results: queue.Queue[DetachResponse] = queue.Queue()
        self._sequence = itertools.count()
        self._workers: dict[int, threading.Thread] = {}
        self._thread: threading.Thread | None = None
        self._last_result: CapturedOutput | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._supervise,
            daemon=True,
            name="loop-supervisor",
        )
        self._thread.start()
        logger.debug("Supervisor thread started")

    def submit(self, command_line: str, env: Mapping[str, str] | None = None) -> int:
        """Queue one run and return its sequence number without waiting for it."""

        if self._thread is None:
            raise RuntimeError("Supervisor is not running; call start() first.")
        sequence_number = next(self._sequence)
        self._inbox.put(
            DetachRequest(
                sequence_number=sequence_number,
                command_line=command_line,
                env=dict(env) if env is not None else None,
            ),
        )
        return sequence_number

    def poll(self) -> DetachResponse | None:
        try:
            return self.results.get_nowait()
        except queue.Empty:
            return None

    def shutdown(self) -> list[DetachResponse]:
        """Wait for every dispatched run, then return the responses not yet polled."""

        if self._thread is not None:
            self._inbox.put(_SHUTDOWN)
            self._thread.join()
            self._thread = None
            logger.debug("Supervisor thread stopped")

        pending: list[DetachResponse] = []
        while (response := self.poll()) is not None:
            pending.append(response)
        return pending

    def _supervise(self) -> None:
        closing = False
        while not (closing and not self._workers):
            message = self._inbox.get()
            if message is _SHUTDOWN:
                closing = True
            elif isinstance(message, DetachRequest):
                self._spawn_worker(message)
            elif isinstance(message, _Finished):
                self._forward(message)

    def _spawn_worker(self, request: DetachRequest) -> None:
        worker = threading.Thread(
            target=self._work,
            args=(request,),
            daemon=True,
            name=f"loop-worker-{request.sequence_number}",
        )
        self._workers[request.sequence_number] = worker
        worker.start()

    def _work(self, request: DetachRequest) -> None:
        runner = self._runner_factory()
        try:
            result = runner.run(request.command_line, request.env)
        except Exception as exc:  # noqa: BLE001
            self._inbox.put(_Finished(request=request, result=None, error=exc))
            return
        finally:
            close = getattr(runner, "close", None)
            if close is not None:
                close()
        self._inbox.put(_Finished(request=request, result=result))

    def _forward(self, finished: _Finished) -> None:
        sequence_number = finished.request.sequence_number
        self.results.put(
            DetachResponse(
                sequence_number=sequence_number,
                result=finished.result,
                prior_result=self._last_result,
                error=finished.error,
            ),
        )
        if finished.result is not None:
            self._last_result = finished.result

        worker = self._workers.pop(sequence_number, None)
        if worker is not None:
            worker.join()
        logger.debug("Run #%d finished; %d still in flight", sequence_number, len(self._workers))
