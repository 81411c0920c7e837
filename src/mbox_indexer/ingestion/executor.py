"""Fixed-size thread pool with a bounded queue and caller-runs overflow.

``N`` worker threads drain a queue holding at most ``N`` tasks. When the
queue is full the submitting thread runs the task itself, so at most
``N`` queued, ``N`` running and one caller task exist at any instant.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from queue import Empty, Full, Queue
from threading import Lock, Thread
from typing import Any

LOGGER = logging.getLogger(__name__)

_STOP_MARKER = object()


@dataclass(slots=True)
class _WorkItem:
    future: Future[Any]
    fn: Callable[..., Any]
    args: tuple[Any, ...]

    def run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args)
        except BaseException as exc:  # pylint: disable=broad-except
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class CallerRunsExecutor:
    """Run submitted callables on ``workers`` threads with backpressure."""

    def __init__(self, workers: int, *, name: str = "indexer") -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._workers = workers
        self._queue: Queue[Any] = Queue(maxsize=workers)
        self._lock = Lock()
        self._shutdown = False
        self._caller_runs = 0
        # Daemon threads: a delivery stuck past the shutdown deadline must not
        # keep the process alive.
        self._threads = [
            Thread(target=self._work, name=f"{name}-{index}", daemon=True)
            for index in range(workers)
        ]
        for thread in self._threads:
            thread.start()
        LOGGER.debug("Started %d worker threads", workers)

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def pending(self) -> int:
        """Approximate number of tasks waiting in the queue."""
        return self._queue.qsize()

    @property
    def caller_runs(self) -> int:
        """How many tasks ran on the submitting thread so far."""
        return self._caller_runs

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """Queue ``fn(*args)``, or run it inline when the queue is full."""
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Cannot submit tasks after shutdown")
        item = _WorkItem(future=Future(), fn=fn, args=args)
        try:
            self._queue.put_nowait(item)
        except Full:
            LOGGER.debug("Task queue full; running task on the submitting thread")
            self._caller_runs += 1
            item.run()
        return item.future

    def shutdown(self, timeout: float) -> bool:
        """Stop accepting tasks and wait for queued and running ones.

        Returns ``True`` when every worker terminated within ``timeout``.
        """
        with self._lock:
            self._shutdown = True
        deadline = time.monotonic() + timeout
        for _ in self._threads:
            try:
                self._queue.put(_STOP_MARKER, timeout=_remaining(deadline))
            except Full:
                break
        for thread in self._threads:
            thread.join(_remaining(deadline))
        return not any(thread.is_alive() for thread in self._threads)

    def shutdown_now(self) -> int:
        """Cancel every task still waiting in the queue.

        Running tasks cannot be interrupted; they finish on their daemon
        threads. Returns the number of cancelled tasks.
        """
        with self._lock:
            self._shutdown = True
        cancelled = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                break
            self._queue.task_done()
            if isinstance(item, _WorkItem) and item.future.cancel():
                cancelled += 1
        for _ in self._threads:
            try:
                self._queue.put_nowait(_STOP_MARKER)
            except Full:
                break
        if cancelled:
            LOGGER.warning("Cancelled %d queued tasks", cancelled)
        return cancelled

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP_MARKER:
                    return
                item.run()
            finally:
                self._queue.task_done()


def _remaining(deadline: float) -> float:
    return max(deadline - time.monotonic(), 0.0)


__all__ = ["CallerRunsExecutor"]
