"""Data models for the Metrics Browser."""

from .data_models import (
    PARTITION_KEY,
    ROW_KEY,
    TIMESTAMP,
    SYSTEM_FIELDS,
    ValueKind,
    MetricsPage,
    clamp_size,
    escape_filter_value,
    partition_filter,
    encode_continuation_token,
    decode_continuation_token,
    value_kind,
    to_json_value,
    entity_to_row,
)
from .schema import (
    DEFAULT_PREFERRED_COLUMNS,
    PREFERRED_COLUMNS,
    preferred_columns,
    collect_keys,
    order_columns,
)

__all__ = [
    "PARTITION_KEY",
    "ROW_KEY",
    "TIMESTAMP",
    "SYSTEM_FIELDS",
    "ValueKind",
    "MetricsPage",
    "clamp_size",
    "escape_filter_value",
    "partition_filter",
    "encode_continuation_token",
    "decode_continuation_token",
    "value_kind",
    "to_json_value",
    "entity_to_row",
    "DEFAULT_PREFERRED_COLUMNS",
    "PREFERRED_COLUMNS",
    "preferred_columns",
    "collect_keys",
    "order_columns",
]
