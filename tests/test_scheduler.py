"""Tests for JobQueue batching."""

import asyncio
import logging

import pytest

from ripple import JobQueue, asyncio_defer, observable, register_effect


class TestJobQueue:
    def test_coalesces_burst_into_one_run(self):
        state = observable({"count": 1})
        log = []
        queue = JobQueue()
        register_effect(lambda: log.append(state["count"]), scheduler=queue.enqueue)
        assert log == [1]

        state["count"] = 2
        state["count"] = 3
        assert log == [1]
        assert len(queue) == 1

        assert queue.flush() == 1
        assert log == [1, 3]

    def test_first_enqueued_order(self):
        state = observable({"a": 0, "b": 0})
        order = []
        queue = JobQueue()
        register_effect(lambda: order.append(("a", state["a"])), scheduler=queue.enqueue)
        register_effect(lambda: order.append(("b", state["b"])), scheduler=queue.enqueue)
        order.clear()
        state["b"] = 1
        state["a"] = 1
        state["b"] = 2
        queue.flush()
        assert order == [("b", 2), ("a", 1)]

    def test_defer_called_once_per_burst(self):
        deferred = []
        queue = JobQueue(defer=deferred.append)
        queue.enqueue(lambda: None)
        queue.enqueue(lambda: None)
        assert deferred == [queue.flush]
        assert queue.pending

        deferred[0]()
        assert not queue.pending
        queue.enqueue(lambda: None)
        assert len(deferred) == 2

    def test_skips_stopped_effects(self):
        state = observable({"n": 1})
        log = []
        queue = JobQueue()
        e = register_effect(lambda: log.append(state["n"]), scheduler=queue.enqueue)
        state["n"] = 2
        e.stop()
        assert queue.flush() == 0
        assert log == [1]

    def test_jobs_queued_during_flush_run_in_same_flush(self):
        queue = JobQueue()
        log = []

        def first():
            log.append("first")
            queue.enqueue(lambda: log.append("second"))

        queue.enqueue(first)
        assert queue.flush() == 2
        assert log == ["first", "second"]

    def test_error_propagates_and_clears_pending(self):
        queue = JobQueue()

        def boom():
            raise RuntimeError("boom")

        queue.enqueue(boom)
        with pytest.raises(RuntimeError, match="boom"):
            queue.flush()
        assert not queue.pending

    def test_logs_flush(self, caplog):
        queue = JobQueue()
        queue.enqueue(lambda: None)
        with caplog.at_level(logging.DEBUG, logger="ripple.scheduler"):
            queue.flush()
        assert "Flushed 1 jobs" in caplog.text


class TestAsyncioDefer:
    def test_flushes_after_synchronous_burst(self):
        async def main():
            state = observable({"count": 0})
            log = []
            queue = JobQueue(defer=asyncio_defer)
            register_effect(lambda: log.append(state["count"]), scheduler=queue.enqueue)
            state["count"] = 1
            state["count"] = 2
            assert log == [0]
            await asyncio.sleep(0)
            return log

        assert asyncio.run(main()) == [0, 2]


class TestFlushErrors:
    def test_failing_job_does_not_drop_the_rest(self):
        queue = JobQueue()
        log = []

        def boom():
            raise RuntimeError("boom")

        queue.enqueue(boom)
        queue.enqueue(lambda: log.append("second"))
        with pytest.raises(RuntimeError, match="boom"):
            queue.flush()
        assert log == ["second"]
        assert len(queue) == 0
        assert not queue.pending

    def test_later_failures_are_logged(self, caplog):
        queue = JobQueue()

        def first():
            raise RuntimeError("first")

        def second():
            raise ValueError("second")

        queue.enqueue(first)
        queue.enqueue(second)
        with caplog.at_level(logging.ERROR, logger="ripple.scheduler"):
            with pytest.raises(RuntimeError, match="first"):
                queue.flush()
        assert "failed during flush" in caplog.text
        assert "ValueError" in caplog.text
