import threading

import pytest

from voucher_reception.core.errors import QueueFullError
from voucher_reception.services.worker_pool import ExtractionWorkerPool, TaskState


@pytest.fixture
def pool():
    pool = ExtractionWorkerPool(max_workers=1, max_queue=1)
    yield pool
    pool.shutdown(wait=True, cancel_pending=True)


def test_submit_returns_handle_with_result(pool):
    handle = pool.submit(lambda x: x * 2, 21, name="double")

    assert handle.wait(timeout=5) == 42
    assert handle.state == TaskState.SUCCEEDED
    assert handle.name == "double"
    assert handle.error is None


def test_failed_task_reraises_on_wait(pool):
    def boom():
        raise RuntimeError("extraction exploded")

    handle = pool.submit(boom)

    with pytest.raises(RuntimeError, match="exploded"):
        handle.wait(timeout=5)
    assert handle.state == TaskState.FAILED
    assert isinstance(handle.error, RuntimeError)


def test_bounded_queue_rejects_overflow_and_queued_task_can_be_cancelled(pool):
    release = threading.Event()
    started = threading.Event()

    def block():
        started.set()
        release.wait(timeout=5)
        return "done"

    running = pool.submit(block)
    assert started.wait(timeout=5)
    queued = pool.submit(lambda: "queued")

    assert running.state == TaskState.RUNNING
    assert queued.state == TaskState.QUEUED

    with pytest.raises(QueueFullError):
        pool.submit(lambda: "overflow")

    assert queued.cancel() is True
    assert queued.state == TaskState.CANCELLED

    release.set()
    assert running.wait(timeout=5) == "done"
    # A running task cannot be cancelled
    assert running.cancel() is False


def test_stats_counts_tasks_by_state(pool):
    pool.submit(lambda: None).wait(timeout=5)

    stats = pool.stats()

    assert stats["max_workers"] == 1
    assert stats["max_queue"] == 1
    assert stats["history"] == 256
    assert stats["tasks"]["succeeded"] == 1
    assert stats["tasks"]["running"] == 0


def test_get_returns_handle_by_id(pool):
    handle = pool.submit(lambda: 1)
    assert pool.get(handle.id) is handle
    assert pool.get(9999) is None


def test_invalid_sizes_rejected():
    with pytest.raises(ValueError):
        ExtractionWorkerPool(max_workers=0)
    with pytest.raises(ValueError):
        ExtractionWorkerPool(max_workers=1, max_queue=-1)
    with pytest.raises(ValueError):
        ExtractionWorkerPool(max_workers=1, history=-1)


def test_finished_tasks_are_forgotten_beyond_history():
    pool = ExtractionWorkerPool(max_workers=2, max_queue=20, history=3)
    handles = []
    for i in range(20):
        handle = pool.submit(lambda n: n, i, name=f"task-{i}")
        handle.wait(timeout=5)
        handles.append(handle)
    # Done callbacks run on the worker threads; joining them lets every one finish
    pool.shutdown(wait=True)

    assert len(pool._handles) == 3
    assert sum(pool.stats()["tasks"].values()) == 3
    assert pool.get(handles[0].id) is None
    assert pool.find("task-0") is None
    assert pool.get(handles[-1].id) is handles[-1]
    assert pool.find("task-19") is handles[-1]


def test_running_tasks_are_never_forgotten():
    pool = ExtractionWorkerPool(max_workers=1, max_queue=1, history=0)
    release = threading.Event()
    running = pool.submit(release.wait, 5)

    assert pool.get(running.id) is running
    assert pool.find("wait") is running

    release.set()
    running.wait(timeout=5)
    pool.shutdown(wait=True)
    assert pool.get(running.id) is None


def test_find_returns_latest_submission_for_a_name(pool):
    first = pool.submit(lambda: 1, name="extract-document-1")
    first.wait(timeout=5)
    second = pool.submit(lambda: 2, name="extract-document-1")
    second.wait(timeout=5)

    assert pool.find("extract-document-1") is second
    assert pool.find("extract-document-2") is None
