"""Column discovery and ordering for schemaless tables."""

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .data_models import PARTITION_KEY, ROW_KEY, TIMESTAMP, SYSTEM_FIELDS


DEFAULT_PREFERRED_COLUMNS: Tuple[str, ...] = (TIMESTAMP, PARTITION_KEY, ROW_KEY)

# Keyed by lower-cased table name.
PREFERRED_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "cpuusage": (TIMESTAMP, "CpuPercent", PARTITION_KEY, ROW_KEY),
    "memoryusage": (TIMESTAMP, "MemUsedMb", "MemTotalMb", PARTITION_KEY, ROW_KEY),
    "pingtime": (TIMESTAMP, "Host", "PingMs", PARTITION_KEY, ROW_KEY),
}


def preferred_columns(table_name: str) -> Tuple[str, ...]:
    """Return the preferred leading columns for ``table_name``."""
    return PREFERRED_COLUMNS.get(table_name.lower(), DEFAULT_PREFERRED_COLUMNS)


def collect_keys(rows: Iterable[Mapping[str, object]]) -> List[str]:
    """
    Union the property names of ``rows`` with the system fields.

    Names are deduplicated case-insensitively; the first spelling seen wins.
    """
    seen: Dict[str, str] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key.lower(), key)
    for key in SYSTEM_FIELDS:
        seen.setdefault(key.lower(), key)
    return list(seen.values())


def order_columns(table_name: str, keys: Sequence[str]) -> List[str]:
    """
    Order observed column names for display.

    The table's preferred columns that were observed come first, in their
    declared order; every other key follows sorted case-insensitively.
    """
    observed = {key.lower() for key in keys}
    preferred = [name for name in preferred_columns(table_name) if name.lower() in observed]
    taken = {name.lower() for name in preferred}
    rest = sorted((key for key in keys if key.lower() not in taken), key=str.lower)
    return preferred + rest
