"""
Tests for the append-only timeline store.
"""

import threading

import pytest

from chronobranch.errors import UnboundVariableError, TypeMismatchError
from chronobranch.runtime import (
    TimelineStore, TimelineEntry, int_val, string_val, list_val, set_val, potential_marker,
)


class TestWrites:
    """Test appending bindings."""

    def test_first_write_is_time_zero(self, store):
        assert store.write("x", int_val(1)) == 0

    def test_indices_gapless_and_increasing(self, store):
        times = [store.write("x", int_val(n)) for n in range(5)]
        assert times == [0, 1, 2, 3, 4]

    def test_indices_are_per_variable(self, store):
        store.write("x", int_val(1))
        store.write("x", int_val(2))
        assert store.write("y", int_val(9)) == 0
        assert store.write("x", int_val(3)) == 2

    def test_writes_never_overwrite(self, store):
        store.write("x", int_val(1))
        store.write("x", int_val(2))
        assert [e.value for e in store.entries("x")] == [int_val(1), int_val(2)]

    def test_rejects_potential_marker(self, store):
        with pytest.raises(TypeMismatchError) as exc_info:
            store.write("x", potential_marker(1, 1))
        assert exc_info.value.variable == "x"
        assert not store.is_bound("x")

    def test_write_count(self, store):
        store.write("a", int_val(1))
        store.write("b", int_val(1))
        store.write("a", int_val(2))
        assert store.write_count == 3
        assert len(store) == 3


class TestReads:
    """Test current and historical reads."""

    def test_read_latest(self, store):
        store.write("x", int_val(1))
        store.write("x", int_val(2))
        assert store.read("x") == int_val(2)

    def test_read_unbound(self, store):
        with pytest.raises(UnboundVariableError) as exc_info:
            store.read("ghost")
        assert exc_info.value.kind == "UnboundVariable"
        assert exc_info.value.variable == "ghost"

    def test_read_at_exact_times(self, store):
        for n in (10, 20, 30):
            store.write("x", int_val(n))
        assert store.read_at("x", 0) == int_val(10)
        assert store.read_at("x", 1) == int_val(20)
        assert store.read_at("x", 2) == int_val(30)

    def test_read_at_beyond_latest(self, store):
        store.write("x", int_val(10))
        store.write("x", int_val(20))
        assert store.read_at("x", 99) == int_val(20)

    def test_read_at_negative_time(self, store):
        store.write("x", int_val(10))
        with pytest.raises(UnboundVariableError):
            store.read_at("x", -1)

    def test_read_at_unbound(self, store):
        with pytest.raises(UnboundVariableError, match="at time 0"):
            store.read_at("x", 0)

    def test_latest_index_and_is_bound(self, store):
        assert store.latest_index("x") is None
        assert not store.is_bound("x")
        store.write("x", int_val(1))
        store.write("x", int_val(1))
        assert store.latest_index("x") == 1
        assert "x" in store

    def test_names_in_first_write_order(self, store):
        store.write("b", int_val(1))
        store.write("a", int_val(1))
        store.write("b", int_val(2))
        assert store.names() == ["b", "a"]

    def test_entries_unbound_is_empty(self, store):
        assert store.entries("nope") == []

    def test_current_state(self, store):
        store.write("x", int_val(1))
        store.write("x", int_val(2))
        store.write("s", set_val())
        assert store.current_state() == {"x": int_val(2), "s": set_val()}


class TestSnapshots:
    """Test snapshots and dumps."""

    def test_snapshot_is_a_copy(self, store):
        store.write("x", int_val(1))
        snap = store.snapshot()
        store.write("x", int_val(2))
        assert len(snap["x"]) == 1

    def test_entry_display(self, store):
        store.write("xs", list_val())
        assert str(store.entries("xs")[0]) == "xs@0 = []"

    def test_to_dict(self, store):
        store.write("x", int_val(1))
        store.write("x", string_val("two"))
        assert store.to_dict() == {
            "variables": {
                "x": [
                    {"time": 0, "type": "int", "value": 1},
                    {"time": 1, "type": "string", "value": "two"},
                ]
            }
        }

    def test_from_dict_rebuilds_store(self, store):
        store.write("x", int_val(1))
        store.write("x", list_val([int_val(2)]))
        store.write("s", set_val([string_val("a")]))
        copy = TimelineStore.from_dict(store.to_dict())
        assert copy.snapshot() == store.snapshot()

    def test_from_dict_rejects_gaps(self):
        data = {"variables": {"x": [{"time": 0, "type": "int", "value": 1},
                                    {"time": 2, "type": "int", "value": 2}]}}
        with pytest.raises(ValueError, match="not gapless"):
            TimelineStore.from_dict(data)

    def test_concurrent_snapshot_sees_prefix(self, store):
        """A snapshot taken while another thread writes is a prefix of its writes."""
        done = threading.Event()

        def writer():
            for n in range(2000):
                store.write("x", int_val(n))
            done.set()

        thread = threading.Thread(target=writer)
        thread.start()
        snapshots = []
        while not done.is_set():
            snapshots.append(store.snapshot().get("x", []))
        thread.join()

        for entries in snapshots:
            assert [e.time for e in entries] == list(range(len(entries)))
            assert all(e.value == int_val(e.time) for e in entries)
        assert len(store.entries("x")) == 2000

    def test_entry_is_frozen(self):
        entry = TimelineEntry("x", 0, int_val(1))
        with pytest.raises(AttributeError):
            entry.time = 5
