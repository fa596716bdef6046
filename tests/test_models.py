"""Tests for nodescope data models."""

import pytest

from nodescope.models import MemoryUsage, ResourceHandle, Snapshot, SortDirection


def test_resource_handle_text_form():
    """The textual form is what search terms are matched against."""
    handle = ResourceHandle(node="node-a", kind="process", ident=123)
    assert str(handle) == "<123>"


def test_resource_handle_equality():
    assert ResourceHandle("a", "port", 1) == ResourceHandle("a", "port", 1)
    assert ResourceHandle("a", "port", 1) != ResourceHandle("b", "port", 1)


def test_resource_handle_is_frozen():
    """Test that ResourceHandle is immutable (frozen)."""
    handle = ResourceHandle(node="node-a", kind="table", ident=7)

    try:
        handle.ident = 8
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_resource_handle_uses_slots():
    """Test that ResourceHandle uses __slots__ for memory efficiency."""
    handle = ResourceHandle(node="node-a", kind="table", ident=7)
    assert not hasattr(handle, "__dict__")


def test_snapshot_unpacks_as_pair():
    records, total = Snapshot(records=[{"a": 1}], total=10)
    assert records == [{"a": 1}]
    assert total == 10


class TestSortDirection:
    """Tests for SortDirection."""

    def test_values(self):
        assert SortDirection.ASC.value == "asc"
        assert SortDirection.DESC.value == "desc"

    def test_coerce(self):
        assert SortDirection.coerce("asc") is SortDirection.ASC
        assert SortDirection.coerce("Desc") is SortDirection.DESC
        assert SortDirection.coerce(SortDirection.DESC) is SortDirection.DESC

    def test_coerce_invalid(self):
        with pytest.raises(ValueError, match="Invalid sort direction"):
            SortDirection.coerce("up")


def test_memory_usage_from_counters():
    memory = MemoryUsage.from_counters(
        {"total": 1000, "processes": 300, "atom": 50, "binary": 120, "code": 200, "ets": 80}
    )
    assert memory.process == 300
    assert memory.other == 250
