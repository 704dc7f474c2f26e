"""
Scheduled Task Service.

A single abstraction for the two kinds of timers the client needs:
one-shot delays (``call_later``) and fixed-rate repeats
(``call_every``).  Both return a ``ScheduledTask`` whose ``cancel()``
is the cancellation token; once cancelled, a task never fires again.

``ThreadScheduler`` runs every task on one daemon worker thread that
sleeps on a ``threading.Condition`` until the earliest timer is due.
A debounce that is restarted on every game frame therefore costs a heap
entry per restart, not a thread.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from app.logger import StructuredLogger
from app.services.base_service import BaseService


class ScheduledTask:
    """Cancellation handle for a scheduled callback."""

    def __init__(self) -> None:
        self._cancelled: threading.Event = threading.Event()

    def cancel(self) -> None:
        """Prevent any future run.  Safe to call repeatedly."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class Scheduler(Protocol):
    """Anything able to run callbacks later or periodically."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask: ...


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    task: ScheduledTask = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)


class ThreadScheduler(BaseService):
    """Runs scheduled callbacks on a single daemon worker thread.

    Callbacks run one at a time, in due order.  Exceptions escaping a
    callback are logged and never kill a periodic task or the worker.

    Parameters
    ----------
    logger:
        Structured JSON logger.
    name:
        Name of the worker thread.
    clock:
        Monotonic time source in seconds.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        name: str = "Scheduler",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(logger)
        self._name: str = name
        self._clock: Callable[[], float] = clock
        self._cond: threading.Condition = threading.Condition()
        self._queue: list[_Timer] = []
        self._seq = itertools.count()
        self._worker: Optional[threading.Thread] = None
        self._closed: bool = False

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run *callback* once after *delay* seconds unless cancelled."""
        return self._schedule(max(delay, 0.0), callback, None)

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run *callback* every *interval* seconds until cancelled.

        The first run happens one full interval after scheduling.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._schedule(interval, callback, interval)

    def shutdown(self, timeout: float = 2.0) -> None:
        """Drop every pending timer and stop the worker thread.

        Raises ``RuntimeError`` from later ``call_later``/``call_every``.
        """
        with self._cond:
            self._closed = True
            self._queue.clear()
            self._cond.notify_all()
            worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)

    @property
    def pending(self) -> int:
        """Number of timers that may still fire."""
        with self._cond:
            return sum(1 for timer in self._queue if not timer.task.cancelled)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _schedule(
        self, delay: float, callback: Callable[[], None], interval: Optional[float],
    ) -> ScheduledTask:
        task = ScheduledTask()
        with self._cond:
            if self._closed:
                raise RuntimeError(f"{self._name} has been shut down")
            heapq.heappush(
                self._queue,
                _Timer(self._clock() + delay, next(self._seq), task, callback, interval),
            )
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._worker.start()
            self._cond.notify()
        return task

    def _next_due(self) -> Optional[_Timer]:
        """Block until a timer is due; ``None`` once shut down."""
        with self._cond:
            while True:
                if self._closed:
                    return None
                while self._queue and self._queue[0].task.cancelled:
                    heapq.heappop(self._queue)
                if not self._queue:
                    self._cond.wait()
                    continue
                wait = self._queue[0].due - self._clock()
                if wait > 0:
                    self._cond.wait(timeout=wait)
                    continue
                timer = heapq.heappop(self._queue)
                if timer.interval is not None:
                    heapq.heappush(
                        self._queue,
                        _Timer(
                            timer.due + timer.interval, next(self._seq),
                            timer.task, timer.callback, timer.interval,
                        ),
                    )
                return timer

    def _run(self) -> None:
        while True:
            timer = self._next_due()
            if timer is None:
                return
            if not timer.task.cancelled:
                self._invoke(timer.callback)

    def _invoke(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            self._logger.error(
                "Scheduled callback raised an unhandled exception.",
                exc_info=True,
            )
