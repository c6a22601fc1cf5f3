"""
Fire-and-forget background jobs for backend calls.

Jobs run on a thread pool so the session never blocks on the query or sandbox
backend. A job's worker thread does not touch session state: when the job
ends, its outcome is handed to ``post`` (the session inbox), and the completion
callback runs later on whichever thread pumps that inbox.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class JobOutcome(Generic[T]):
    """Result of a finished job: exactly one of ``value`` / ``error`` is meaningful."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


PostFn = Callable[[Callable[[], None]], None]


class JobRunner:
    """
    Thread-pool runner whose completions are posted back to the owner.

    Args:
        post: Called from the worker thread with a zero-argument callable that
            applies the completion; the owner queues it for its own thread.
        max_workers: Size of the worker pool.
    """

    def __init__(self, post: PostFn, max_workers: int = 4) -> None:
        self._post = post
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="adoptimiser-job",
        )
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()
        self._closed = False

    def submit(self, name: str, fn: Callable[[], T], on_done: Callable[[JobOutcome[T]], None]) -> Future:
        """
        Starts ``fn`` in the background and arranges for ``on_done`` to be posted.

        Exceptions raised by ``fn`` are captured in the outcome, never raised
        here.
        """
        if self._closed:
            raise RuntimeError("job runner is shut down")

        def _run() -> JobOutcome[T]:
            try:
                outcome: JobOutcome[T] = JobOutcome(name=name, value=fn())
            except Exception as exc:
                logger.debug("Job %s failed: %s", name, exc)
                outcome = JobOutcome(name=name, error=exc)
            self._post(lambda: on_done(outcome))
            return outcome

        future = self._executor.submit(_run)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        logger.debug("Submitted job %s", name)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Blocks until every submitted job has posted its completion.

        Returns:
            True if all jobs finished within ``timeout``.
        """
        with self._lock:
            futures = set(self._pending)
        if not futures:
            return True
        _done, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_jobs: bool = False) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait_for_jobs, cancel_futures=not wait_for_jobs)


__all__ = ["JobOutcome", "JobRunner", "PostFn"]
