"""Tests for column discovery and ordering."""

import pytest

from metrics_browser.models.schema import (
    DEFAULT_PREFERRED_COLUMNS,
    PREFERRED_COLUMNS,
    collect_keys,
    order_columns,
    preferred_columns,
)


class TestPreferredColumns:
    """Preference table lookups."""

    def test_known_tables_case_insensitive(self):
        """Test preference lookup ignores table name case."""
        assert preferred_columns("CpuUsage") == PREFERRED_COLUMNS["cpuusage"]
        assert preferred_columns("CPUUSAGE") == PREFERRED_COLUMNS["cpuusage"]
        assert preferred_columns("pingtime")[1:3] == ("Host", "PingMs")

    def test_unknown_table_uses_default(self):
        """Test fallback preferences."""
        assert preferred_columns("UnknownTable") == DEFAULT_PREFERRED_COLUMNS
        assert DEFAULT_PREFERRED_COLUMNS == ("Timestamp", "PartitionKey", "RowKey")


class TestCollectKeys:
    """Union of observed property names."""

    def test_always_includes_system_fields(self):
        """Test system fields with an empty sample."""
        keys = collect_keys([])
        assert sorted(keys) == ["PartitionKey", "RowKey", "Timestamp"]

    def test_case_insensitive_union_keeps_first_spelling(self):
        """Test key union keeps the first spelling seen."""
        rows = [
            {"PartitionKey": "a", "RowKey": "1", "cpuPercent": 1.0},
            {"PartitionKey": "a", "RowKey": "2", "CpuPercent": 2.0, "Extra": 1},
        ]
        keys = collect_keys(rows)
        assert "cpuPercent" in keys
        assert "CpuPercent" not in keys
        assert len(keys) == 5


class TestOrderColumns:
    """Preferred prefix first, remaining keys alphabetical."""

    def test_cpu_usage_example(self):
        """Test CpuUsage column ordering."""
        keys = ["RowKey", "zExtra", "PartitionKey", "CpuPercent", "Timestamp", "aExtra"]
        assert order_columns("CpuUsage", keys) == [
            "Timestamp", "CpuPercent", "PartitionKey", "RowKey", "aExtra", "zExtra",
        ]

    def test_unknown_table_default_order(self):
        """Test default column ordering."""
        keys = ["zeta", "RowKey", "Alpha", "PartitionKey", "beta", "Timestamp"]
        assert order_columns("UnknownTable", keys) == [
            "Timestamp", "PartitionKey", "RowKey", "Alpha", "beta", "zeta",
        ]

    def test_unobserved_preferred_columns_are_skipped(self):
        """Test preferred columns missing from the sample are skipped."""
        keys = ["PartitionKey", "RowKey", "Timestamp", "MemTotalMb"]
        assert order_columns("MemoryUsage", keys) == [
            "Timestamp", "MemTotalMb", "PartitionKey", "RowKey",
        ]

    def test_preferred_match_is_case_insensitive(self):
        """Test preferred columns match regardless of case."""
        keys = ["partitionkey", "rowkey", "timestamp", "pingms", "host", "Loss"]
        result = order_columns("PingTime", keys)
        assert result[:5] == ["Timestamp", "Host", "PingMs", "PartitionKey", "RowKey"]
        assert result[5:] == ["Loss"]

    @pytest.mark.parametrize("table", ["CpuUsage", "MemoryUsage", "PingTime", "Other"])
    def test_result_is_permutation_of_observed_keys(self, table):
        """Test ordering only permutes the observed keys."""
        keys = collect_keys([{"PartitionKey": "p", "RowKey": "r", "b": 1, "A": 2, "CpuPercent": 3}])
        result = order_columns(table, keys)
        assert sorted(k.lower() for k in result) == sorted(k.lower() for k in keys)
        prefix = [c for c in preferred_columns(table) if c.lower() in {k.lower() for k in keys}]
        assert result[:len(prefix)] == prefix
        rest = result[len(prefix):]
        assert rest == sorted(rest, key=str.lower)
