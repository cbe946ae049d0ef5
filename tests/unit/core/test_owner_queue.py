"""Tests for the owner-thread work queue."""

import threading

from vcwatch.core.owner_queue import OwnerQueue


def test_drain_runs_callables_in_order():
    queue = OwnerQueue()
    seen = []
    queue.post(seen.append, 1)
    queue.post(seen.append, 2)

    assert queue.drain() == 2
    assert seen == [1, 2]
    assert queue.drain() == 0


def test_callables_posted_while_draining_run_in_same_drain():
    queue = OwnerQueue()
    seen = []

    def first():
        seen.append("first")
        queue.post(seen.append, "second")

    queue.post(first)
    assert queue.drain() == 2
    assert seen == ["first", "second"]


def test_failing_callable_does_not_stop_the_queue(caplog):
    queue = OwnerQueue()
    seen = []

    def boom():
        raise RuntimeError("boom")

    queue.post(boom)
    queue.post(seen.append, "after")

    assert queue.drain() == 2
    assert seen == ["after"]
    assert "Error running queued callback" in caplog.text


def test_max_items_limits_one_drain():
    queue = OwnerQueue()
    seen = []
    for i in range(3):
        queue.post(seen.append, i)

    assert queue.drain(max_items=2) == 2
    assert seen == [0, 1]
    assert queue.drain() == 1


def test_clear_drops_pending_work():
    queue = OwnerQueue()
    seen = []
    queue.post(seen.append, 1)
    queue.clear()
    assert queue.drain() == 0
    assert seen == []


def test_post_from_another_thread_runs_on_owner():
    queue = OwnerQueue()
    ran_on = []
    worker = threading.Thread(target=lambda: queue.post(lambda: ran_on.append(threading.get_ident())))
    worker.start()
    worker.join()

    queue.drain()
    assert ran_on == [threading.get_ident()]


def test_claim_moves_ownership():
    queue = OwnerQueue()
    results = []

    def claim_and_check():
        queue.claim()
        results.append(queue.is_owner_thread)

    assert queue.is_owner_thread
    worker = threading.Thread(target=claim_and_check)
    worker.start()
    worker.join()

    assert results == [True]
    assert not queue.is_owner_thread
