"""
Module: editor.serial_queue

Purpose:
    Ordered job queue for operations that touch the page cache or the
    archive codec. A single worker thread runs jobs strictly in submission
    order, so a page switch requested while another is in flight waits for
    the earlier flush and fetch to settle instead of interleaving with them.

Key Classes:
    - SerialQueue: single-worker ThreadPoolExecutor wrapper

Usage:
    queue = SerialQueue()
    try:
        future = queue.submit(buffer_switch, "page-2")
        content = future.result()
    finally:
        queue.shutdown()

Jobs cannot be cancelled once started; a failed job's exception is
delivered through its Future and does not stop later jobs.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


class SerialQueue:
    """
    Runs submitted callables one at a time, in order, on a worker thread.

    Attributes:
        name: Thread name prefix (shows up in log records)
    """

    def __init__(self, name: str = "quiz-builder"):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._futures: List[Future] = []
        self._lock = threading.Lock()
        self._worker_ident: Optional[int] = None

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> "Future[R]":
        """
        Queue ``fn(*args, **kwargs)``.

        When called from inside a running job the call executes inline, so
        jobs may compose other queued operations without deadlocking.

        Returns:
            Future resolving to the callable's return value
        """
        if threading.get_ident() == self._worker_ident:
            inline: Future = Future()
            try:
                inline.set_result(fn(*args, **kwargs))
            except Exception as e:
                inline.set_exception(e)
            return inline

        future = self._executor.submit(self._run, fn, args, kwargs)
        with self._lock:
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)
        return future

    def _run(self, fn: Callable[..., R], args: tuple, kwargs: dict) -> R:
        self._worker_ident = threading.get_ident()
        return fn(*args, **kwargs)

    def call(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Queue ``fn`` and block until it has run. Exceptions propagate."""
        return self.submit(fn, *args, **kwargs).result()

    def wait_all(self, timeout: Optional[float] = None) -> int:
        """
        Wait for all queued jobs to complete.

        Args:
            timeout: Max seconds to wait per job (None = indefinite).

        Returns:
            Number of jobs that completed without raising.
        """
        with self._lock:
            pending = list(self._futures)
            self._futures.clear()
        completed = 0
        for future in pending:
            try:
                future.result(timeout=timeout)
                completed += 1
            except Exception as e:
                logger.error(f"Queued job failed: {e}")
        return completed

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for f in self._futures if not f.done())

    def shutdown(self) -> None:
        """Finish queued jobs and stop the worker."""
        self.wait_all()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "SerialQueue":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()
