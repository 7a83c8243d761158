"""Data models for metrics rows, pages and continuation tokens."""

import base64
import binascii
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from azure.data.tables import EntityProperty
from requests.structures import CaseInsensitiveDict

from ..config.settings import MIN_PAGE_SIZE, MAX_PAGE_SIZE
from ..errors import ValidationError, ErrorContext


PARTITION_KEY = "PartitionKey"
ROW_KEY = "RowKey"
TIMESTAMP = "Timestamp"

SYSTEM_FIELDS = (PARTITION_KEY, ROW_KEY, TIMESTAMP)

# Keys of the resume point the SDK reports between pages
TOKEN_KEYS = (PARTITION_KEY, ROW_KEY)


class ValueKind(Enum):
    """Kinds of scalar values a row property can hold."""
    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    BINARY = "binary"


@dataclass
class MetricsPage:
    """One page of rows and the opaque token for the next page."""
    items: List[CaseInsensitiveDict] = field(default_factory=list)
    continuation_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.continuation_token is not None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape returned by the paged-query endpoint."""
        return {
            "items": [dict(item) for item in self.items],
            "continuationToken": self.continuation_token,
        }


def clamp_size(value: Optional[int], default: int) -> int:
    """Clamp a page or sample size to [1, 500], using ``default`` when absent."""
    if value is None:
        value = default
    return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, value))


def escape_filter_value(value: str) -> str:
    """Double single quotes so ``value`` is safe inside an OData string literal."""
    return value.replace("'", "''")


def partition_filter(partition_key: str) -> str:
    """Build the equality filter selecting one partition."""
    return f"{PARTITION_KEY} eq '{escape_filter_value(partition_key)}'"


def encode_continuation_token(token: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Wrap the store's continuation token in an opaque URL-safe string."""
    if not token:
        return None
    payload = json.dumps(dict(token), separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def decode_continuation_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Recover the store's continuation token from :func:`encode_continuation_token` output."""
    if not token:
        return None
    padded = token + "=" * (-len(token) % 4)
    try:
        decoded = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        context = ErrorContext(operation="decode_continuation_token")
        raise ValidationError("continuation token is not valid", field="ct", context=context) from e

    # The SDK treats a token without both keys as a fresh query from page 0
    well_formed = (
        isinstance(decoded, dict)
        and set(decoded) == set(TOKEN_KEYS)
        and all(isinstance(decoded[key], str) for key in TOKEN_KEYS)
    )
    if not well_formed:
        context = ErrorContext(operation="decode_continuation_token")
        raise ValidationError("continuation token is not valid", field="ct", context=context)
    return decoded


def value_kind(value: Any) -> ValueKind:
    """Classify a property value after :func:`to_json_value`."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, datetime):
        return ValueKind.TIMESTAMP
    if isinstance(value, (bytes, bytearray)):
        return ValueKind.BINARY
    return ValueKind.STRING


def to_json_value(value: Any) -> Any:
    """Convert an SDK property value into something the JSON encoder accepts."""
    if isinstance(value, EntityProperty):
        value = value.value

    kind = value_kind(value)
    if kind is ValueKind.TIMESTAMP:
        return value.isoformat()
    if kind is ValueKind.BINARY:
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def entity_to_row(entity: Mapping[str, Any]) -> CaseInsensitiveDict:
    """
    Flatten a table entity into a case-insensitive field -> value mapping.

    Dynamic properties keep the entity's order; the three system fields are
    always present, with the timestamp taken from the entity metadata.
    """
    row = CaseInsensitiveDict()
    for key, value in entity.items():
        row[key] = to_json_value(value)

    metadata = getattr(entity, "metadata", None) or {}
    row[PARTITION_KEY] = entity.get(PARTITION_KEY)
    row[ROW_KEY] = entity.get(ROW_KEY)
    row[TIMESTAMP] = to_json_value(metadata.get("timestamp"))
    return row
