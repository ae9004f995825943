"""
Bounded worker pool for background invoice extraction.

Each submitted task gets a TaskHandle that exposes its state and lets the
caller wait for or cancel it. At most max_workers tasks run at once and at
most max_queue more wait; submitting beyond that raises QueueFullError
instead of growing without bound.
"""

import concurrent.futures
import itertools
import threading
from collections import OrderedDict
from enum import Enum
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..core.errors import QueueFullError


class TaskState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskHandle:
    def __init__(self, task_id: int, name: str, future: concurrent.futures.Future, started: threading.Event):
        self.id = task_id
        self.name = name
        self._future = future
        self._started = started

    @property
    def state(self) -> TaskState:
        if self._future.cancelled():
            return TaskState.CANCELLED
        if self._future.done():
            return TaskState.FAILED if self._future.exception() else TaskState.SUCCEEDED
        if self._started.is_set():
            return TaskState.RUNNING
        return TaskState.QUEUED

    @property
    def error(self) -> BaseException | None:
        if not self._future.done() or self._future.cancelled():
            return None
        return self._future.exception()

    def wait(self, timeout: float | None = None) -> Any:
        """Block until the task finishes and return its result (re-raises its exception)"""
        return self._future.result(timeout=timeout)

    def cancel(self) -> bool:
        """Cancel the task if it has not started yet"""
        return self._future.cancel()

    def done(self) -> bool:
        return self._future.done()

    def __repr__(self) -> str:
        return f"<TaskHandle(id={self.id}, name={self.name}, state={self.state.value})>"


class ExtractionWorkerPool:
    def __init__(self, max_workers: int = 4, max_queue: int = 32, history: int = 256):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_queue < 0:
            raise ValueError("max_queue must not be negative")
        if history < 0:
            raise ValueError("history must not be negative")

        self.max_workers = max_workers
        self.max_queue = max_queue
        self.history = history
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="extraction"
        )
        self._slots = threading.BoundedSemaphore(max_workers + max_queue)
        self._ids = itertools.count(1)
        # In-flight handles plus at most `history` finished ones, oldest first
        self._handles: OrderedDict[int, TaskHandle] = OrderedDict()
        self._latest_by_name: Dict[str, int] = {}
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args, name: str = None, **kwargs) -> TaskHandle:
        """
        Queue a task.

        Raises:
            QueueFullError: If max_workers + max_queue tasks are already in flight
        """
        if not self._slots.acquire(blocking=False):
            logger.warning("Extraction queue is full", capacity=self.max_workers + self.max_queue)
            raise QueueFullError("Extraction queue is full")

        task_id = next(self._ids)
        started = threading.Event()

        def run():
            started.set()
            return fn(*args, **kwargs)

        try:
            future = self._executor.submit(run)
        except RuntimeError:
            self._slots.release()
            raise

        handle = TaskHandle(task_id, name or getattr(fn, "__name__", "task"), future, started)
        with self._lock:
            self._handles[task_id] = handle
            self._latest_by_name[handle.name] = task_id
        future.add_done_callback(self._task_done)

        logger.debug("Task submitted", task_id=task_id, name=handle.name)
        return handle

    def _task_done(self, _future: concurrent.futures.Future) -> None:
        self._slots.release()
        with self._lock:
            self._prune()

    def _prune(self) -> None:
        """Forget the oldest finished handles beyond the history limit (lock held)"""
        finished = [task_id for task_id, handle in self._handles.items() if handle.done()]
        for task_id in finished[:max(0, len(finished) - self.history)]:
            handle = self._handles.pop(task_id)
            if self._latest_by_name.get(handle.name) == task_id:
                del self._latest_by_name[handle.name]

    def get(self, task_id: int) -> Optional[TaskHandle]:
        with self._lock:
            return self._handles.get(task_id)

    def find(self, name: str) -> Optional[TaskHandle]:
        """Most recent handle submitted under this name, if still tracked"""
        with self._lock:
            task_id = self._latest_by_name.get(name)
            return self._handles.get(task_id) if task_id is not None else None

    def stats(self) -> dict:
        """Counts of tracked tasks by state plus the pool's capacity"""
        with self._lock:
            handles = list(self._handles.values())
        counts = {state.value: 0 for state in TaskState}
        for handle in handles:
            counts[handle.state.value] += 1
        return {
            "max_workers": self.max_workers,
            "max_queue": self.max_queue,
            "history": self.history,
            "tasks": counts,
        }

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
