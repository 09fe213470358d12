"""Tests for watch() — (new, old) delivery on source changes."""

import gc

import pytest

from ripple import (
    InvalidWatchSourceError,
    JobQueue,
    computed,
    observable,
    traverse,
    watch,
)


class TestWatchGetter:
    def test_delivers_new_and_old(self):
        state = observable({"count": 0})
        calls = []
        watch(lambda: state["count"], lambda new, old: calls.append((new, old)))
        assert calls == []
        state["count"] = 1
        assert calls == [(1, 0)]

    def test_old_value_advances(self):
        state = observable({"count": 0})
        calls = []
        watch(lambda: state["count"], lambda new, old: calls.append((new, old)))
        state["count"] = 1
        state["count"] = 5
        assert calls == [(1, 0), (5, 1)]

    def test_immediate(self):
        state = observable({"count": 0})
        calls = []
        watch(lambda: state["count"], lambda new, old: calls.append((new, old)), immediate=True)
        assert calls == [(0, None)]
        state["count"] = 1
        assert calls == [(0, None), (1, 0)]

    def test_unchanged_result_is_not_delivered(self):
        state = observable({"n": 1})
        calls = []
        watch(lambda: state["n"] % 2, lambda new, old: calls.append((new, old)))
        state["n"] = 3
        assert calls == []
        state["n"] = 4
        assert calls == [(0, 1)]

    def test_stop(self):
        state = observable({"n": 1})
        calls = []
        handle = watch(lambda: state["n"], lambda new, old: calls.append(new))
        handle.stop()
        state["n"] = 2
        assert calls == []
        assert handle.stopped

    def test_calling_handle_stops(self):
        state = observable({"n": 1})
        handle = watch(lambda: state["n"], lambda new, old: None)
        handle()
        assert handle.stopped


class TestWatchObservable:
    def test_deep_nested_write(self):
        state = observable({"user": {"address": {"city": "Paris"}}})
        calls = []
        watch(state, lambda new, old: calls.append(new))
        state["user"]["address"]["city"] = "Rome"
        assert calls == [state]

    def test_added_field(self):
        state = observable({"a": 1})
        calls = []
        watch(state, lambda new, old: calls.append(sorted(new.keys())))
        state["b"] = 2
        assert calls == [["a", "b"]]

    def test_cycles_are_safe(self):
        target = {"name": "root"}
        target["self"] = target
        state = observable(target)
        calls = []
        watch(state, lambda new, old: calls.append(True))
        state["name"] = "renamed"
        assert calls == [True]

    def test_list_items(self):
        todos = observable([{"done": False}])
        calls = []
        watch(todos, lambda new, old: calls.append(True))
        todos[0]["done"] = True
        todos.append({"done": False})
        assert calls == [True, True]

    def test_traverse_returns_value(self):
        state = observable({"a": [1, 2]})
        assert traverse(state) is state
        assert traverse(5) == 5


class TestWatchOptions:
    def test_computed_source(self):
        state = observable({"n": 2})
        doubled = computed(lambda: state["n"] * 2)
        calls = []
        watch(doubled, lambda new, old: calls.append((new, old)))
        state["n"] = 3
        assert calls == [(6, 4)]

    def test_deep_getter(self):
        state = observable({"user": {"name": "Ada"}})
        calls = []
        watch(lambda: state["user"], lambda new, old: calls.append(new), deep=True)
        state["user"]["name"] = "Grace"
        assert len(calls) == 1

    def test_shallow_getter_ignores_nested_write(self):
        state = observable({"user": {"name": "Ada"}})
        calls = []
        watch(lambda: state["user"], lambda new, old: calls.append(new))
        state["user"]["name"] = "Grace"
        assert calls == []

    def test_queue_batches_deliveries(self):
        state = observable({"count": 0})
        calls = []
        queue = JobQueue()
        watch(lambda: state["count"], lambda new, old: calls.append((new, old)), queue=queue)
        state["count"] = 1
        state["count"] = 2
        assert calls == []
        queue.flush()
        assert calls == [(2, 0)]

    def test_stop_drops_queued_delivery(self):
        state = observable({"count": 0})
        calls = []
        queue = JobQueue()
        handle = watch(lambda: state["count"], lambda new, old: calls.append(new), queue=queue)
        state["count"] = 1
        handle.stop()
        assert len(queue) == 0
        queue.flush()
        assert calls == []


class TestInvalidSource:
    @pytest.mark.parametrize("source", [1, "count", None, {"plain": "dict"}])
    def test_rejects(self, source):
        with pytest.raises(InvalidWatchSourceError, match="watch source"):
            watch(source, lambda new, old: None)

    def test_is_a_type_error(self):
        with pytest.raises(TypeError):
            watch(42, lambda new, old: None)


class TestNestedSources:
    def test_deep_record_watch_survives_collection(self):
        state = observable({"user": {"address": {"city": "Paris"}}})
        calls = []
        watch(state, lambda new, old: calls.append(True))
        gc.collect()
        state["user"]["address"]["city"] = "Rome"
        assert calls == [True]

    def test_deep_list_watch_survives_collection(self):
        todos = observable([{"done": False}])
        calls = []
        watch(todos, lambda new, old: calls.append(True))
        gc.collect()
        todos[0]["done"] = True
        assert calls == [True]


class TestDedupe:
    def test_unchanged_result_is_skipped_by_default(self):
        state = observable({"n": 1})
        calls = []
        watch(lambda: state["n"] % 2, lambda new, old: calls.append((new, old)))
        state["n"] = 3
        assert calls == []

    def test_dedupe_off_delivers_every_trigger(self):
        state = observable({"n": 1})
        calls = []
        watch(
            lambda: state["n"] % 2,
            lambda new, old: calls.append((new, old)),
            dedupe=False,
        )
        state["n"] = 3
        assert calls == [(1, 1)]
