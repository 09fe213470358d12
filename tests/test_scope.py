"""Tests for EffectScope."""

import logging

import pytest

from ripple import (
    EffectScope,
    ScopeStoppedError,
    computed,
    effect_scope,
    observable,
    register_effect,
    watch,
)


class TestEffectScope:
    def test_stop_disposes_everything_collected(self):
        state = observable({"n": 1})
        log = []
        scope = effect_scope()
        with scope:
            register_effect(lambda: log.append(("effect", state["n"])))
            watch(lambda: state["n"], lambda new, old: log.append(("watch", new)))
            doubled = computed(lambda: state["n"] * 2)
        assert len(scope) == 3

        scope.stop()
        state["n"] = 2
        assert log == [("effect", 1)]
        assert not doubled.effect.active

    def test_effects_outside_scope_untouched(self):
        state = observable({"n": 1})
        log = []
        scope = effect_scope()
        register_effect(lambda: log.append(state["n"]))
        scope.stop()
        state["n"] = 2
        assert log == [1, 2]

    def test_run_returns_result(self):
        scope = EffectScope()
        assert scope.run(lambda: 42) == 42

    def test_nested_scope_stopped_by_parent(self):
        state = observable({"n": 1})
        log = []
        parent = effect_scope()
        with parent:
            child = effect_scope()
            with child:
                register_effect(lambda: log.append(state["n"]))
        parent.stop()
        assert not child.active
        state["n"] = 2
        assert log == [1]

    def test_detached_scope_survives_parent(self):
        parent = effect_scope()
        with parent:
            detached = effect_scope(detached=True)
        parent.stop()
        assert detached.active

    def test_scope_restored_on_exit(self, runtime):
        scope = effect_scope()
        with pytest.raises(RuntimeError):
            with scope:
                raise RuntimeError("oops")
        assert runtime.scope is None

    def test_stopped_scope_cannot_be_entered(self):
        scope = effect_scope()
        scope.stop()
        with pytest.raises(ScopeStoppedError):
            with scope:
                pass

    def test_logs_stop(self, caplog):
        scope = effect_scope()
        with scope:
            register_effect(lambda: None)
        with caplog.at_level(logging.DEBUG, logger="ripple.scope"):
            scope.stop()
        assert "Stopped scope: 1 effects" in caplog.text
