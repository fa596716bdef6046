"""Tests for search matching and sorting."""

import pytest

from nodescope.models import ResourceHandle, SortDirection
from nodescope.query import matches, sort_records


def _pid(ident):
    return ResourceHandle(node="n", kind="process", ident=ident)


class TestMatches:
    """Tests for the predicate filter."""

    def test_no_search_matches_everything(self):
        assert matches("table", {"name": "anything"}, None)
        assert matches("table", {"name": "anything"}, "")

    def test_process_matches_handle_text(self):
        record = {"pid": _pid(4321), "name_or_initial_call": "app.worker.loop/1"}
        assert matches("process", record, "32")

    def test_process_matches_name_case_insensitively(self):
        record = {"pid": _pid(1), "name_or_initial_call": "Logger.Handler"}
        assert matches("process", record, "logger")

    def test_substring_not_prefix(self):
        record = {"pid": _pid(1), "name_or_initial_call": "app.worker.loop/1"}
        assert matches("process", record, "worker")
        assert not matches("process", record, "supervisor")

    def test_port_matches_driver(self):
        record = {"port": ResourceHandle("n", "port", 7), "driver": "efile"}
        assert matches("port", record, "fil")
        assert matches("port", record, "<7>")

    def test_table_matches_only_name(self):
        record = {"name": "sessions", "type": "set"}
        assert matches("table", record, "sess")
        assert not matches("table", record, "set")

    def test_socket_matches_either_address(self):
        record = {"local_address": "*:4000", "foreign_address": "10.0.0.5:51234"}
        assert matches("socket", record, "4000")
        assert matches("socket", record, "10.0.0")
        assert not matches("socket", record, "localhost")


class TestSortRecords:
    """Tests for sort_records."""

    def test_ascending_and_descending_are_reverses(self):
        records = [{"memory": value} for value in (5, 1, 4, 2, 3)]

        ascending = sort_records(records, "memory", SortDirection.ASC)
        descending = sort_records(records, "memory", SortDirection.DESC)

        assert [r["memory"] for r in ascending] == [1, 2, 3, 4, 5]
        assert descending == list(reversed(ascending))

    def test_stable_on_ties_in_both_directions(self):
        records = [{"size": 1, "n": "a"}, {"size": 2, "n": "b"}, {"size": 1, "n": "c"}]

        ascending = sort_records(records, "size", "asc")
        descending = sort_records(records, "size", "desc")

        assert [r["n"] for r in ascending] == ["a", "c", "b"]
        assert [r["n"] for r in descending] == ["b", "a", "c"]

    def test_string_direction_is_accepted(self):
        records = [{"v": 2}, {"v": 1}]
        assert sort_records(records, "v", "DESC")[0]["v"] == 2

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            sort_records([{"v": 1}], "v", "sideways")

    def test_strings_sort_lexically(self):
        records = [{"addr": "b:1"}, {"addr": "a:2"}, {"addr": "c:0"}]
        assert [r["addr"] for r in sort_records(records, "addr", "asc")] == ["a:2", "b:1", "c:0"]

    def test_mixed_types_never_fail(self):
        """Numbers sort before other values, which compare as text."""
        records = [{"v": "x"}, {"v": 3}, {"v": None}, {"v": 1}]
        ordered = [r["v"] for r in sort_records(records, "v", "asc")]
        assert ordered == [1, 3, None, "x"]

    def test_numeric_coerces_non_integers_to_zero(self):
        records = [{"v": 5}, {"v": "busy"}, {"v": -2}, {"v": None}]
        ordered = [r["v"] for r in sort_records(records, "v", "asc", numeric=True)]
        assert ordered == [-2, "busy", None, 5]

    def test_does_not_mutate_input(self):
        records = [{"v": 2}, {"v": 1}]
        sort_records(records, "v", "asc")
        assert [r["v"] for r in records] == [2, 1]

    def test_handles_sort_by_identifier(self):
        records = [{"pid": _pid(ident)} for ident in (2, 1000, 30)]

        ascending = sort_records(records, "pid", "asc")
        descending = sort_records(records, "pid", "desc")

        assert [r["pid"].ident for r in ascending] == [2, 30, 1000]
        assert [r["pid"].ident for r in descending] == [1000, 30, 2]

    def test_numeric_sorts_port_handles(self):
        records = [{"port": ResourceHandle("n", "port", ident)} for ident in (12, 3, 7)]
        ordered = sort_records(records, "port", "asc", numeric=True)
        assert [r["port"].ident for r in ordered] == [3, 7, 12]
