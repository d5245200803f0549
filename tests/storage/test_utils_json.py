"""Tests for the JSON column helpers."""

from sopgraph.utils.json import dump_column, parse_json_list, parse_json_or_none


class TestDumpColumn:
    def test_compact_and_readable(self):
        assert dump_column({"label": "Prüfen", "n": [1, 2]}) == '{"label":"Prüfen","n":[1,2]}'


class TestParseJsonOrNone:
    def test_from_json_string(self):
        assert parse_json_or_none('{"key": "value"}') == {"key": "value"}

    def test_structured_value_passes_through(self):
        assert parse_json_or_none([1, 2]) == [1, 2]

    def test_none_and_empty(self):
        assert parse_json_or_none(None) is None
        assert parse_json_or_none("") is None

    def test_invalid_json_returns_none(self):
        assert parse_json_or_none("not json") is None


class TestParseJsonList:
    def test_list(self):
        assert parse_json_list('["a", "b"]') == ["a", "b"]

    def test_non_list_becomes_empty(self):
        """A dict or garbage in a list column reads back as no entries."""
        assert parse_json_list('{"a": 1}') == []
        assert parse_json_list("oops") == []
        assert parse_json_list(None) == []
