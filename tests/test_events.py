"""Tests for ObservableState subscription handling."""
import pytest

from nexus.events import ObservableState, StoreDisposed


class TestObservableState:
    """Listener registration, selectors and disposal."""

    def test_unsubscribe_stops_notifications(self):
        store = ObservableState({"n": 0})
        seen = []
        unsubscribe = store.subscribe(lambda new, old: seen.append(new["n"]))
        store._set({"n": 1})
        unsubscribe()
        store._set({"n": 2})
        assert seen == [1]

    def test_unsubscribe_twice_is_harmless(self):
        store = ObservableState(0)
        unsubscribe = store.subscribe(lambda new, old: None)
        unsubscribe()
        unsubscribe()

    def test_same_object_is_not_a_change(self):
        state = {"n": 0}
        store = ObservableState(state)
        seen = []
        store.subscribe(lambda new, old: seen.append(new))
        assert store._set(state) is False
        assert seen == []

    def test_selector_skips_equal_slices(self):
        store = ObservableState({"a": 1, "b": 1})
        seen = []
        store.subscribe(lambda new, old: seen.append((new, old)), selector=lambda s: s["a"])
        store._set({"a": 1, "b": 2})
        store._set({"a": 5, "b": 2})
        assert seen == [(5, 1)]

    def test_failing_listener_does_not_block_others(self):
        store = ObservableState(0)
        seen = []

        def broken(new, old):
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.subscribe(lambda new, old: seen.append(new))
        store._set(1)
        assert seen == [1]

    def test_subscribe_after_dispose_raises(self):
        store = ObservableState(0)
        store.dispose()
        assert store.disposed
        with pytest.raises(StoreDisposed):
            store.subscribe(lambda new, old: None)
