"""JSON encoding of the two persisted cart records."""
import json
from typing import List, Optional

from corgicart.errors import (
    CorruptPersistedData,
    ERROR_BAD_COUNTER,
    ERROR_BAD_LINE_ITEM,
    ERROR_NOT_A_LIST,
    ERROR_NOT_JSON,
)
from .models import CartLineItem

# What a browser-side store ends up holding after JSON.stringify(undefined)
_SENTINELS = frozenset({"undefined", "null", "NaN"})


def _parse(key: str, raw: str):
    text = raw.strip()
    if not text or text in _SENTINELS:
        raise CorruptPersistedData(key, ERROR_NOT_JSON)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError) as e:
        raise CorruptPersistedData(key, ERROR_NOT_JSON) from e


def encode_line_items(line_items: List[CartLineItem]) -> str:
    return json.dumps([item.to_dict() for item in line_items], ensure_ascii=False, allow_nan=False)


def decode_line_items(key: str, raw: Optional[str]) -> List[CartLineItem]:
    """
    Decode the line item record.

    Returns an empty list when nothing is stored.

    Raises:
        CorruptPersistedData: the record exists but is not a valid array of line items
    """
    if raw is None:
        return []
    data = _parse(key, raw)
    if not isinstance(data, list):
        raise CorruptPersistedData(key, ERROR_NOT_A_LIST)
    try:
        items = [CartLineItem.from_dict(entry) for entry in data]
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptPersistedData(key, ERROR_BAD_LINE_ITEM) from e

    # Two entries with one id would make remove/update ambiguous
    if len({item.id for item in items}) != len(items):
        raise CorruptPersistedData(key, ERROR_BAD_LINE_ITEM)
    return items


def encode_notification_count(count: int) -> str:
    return json.dumps(count)


def decode_notification_count(key: str, raw: Optional[str]) -> int:
    """
    Decode the notification counter record.

    Raises:
        CorruptPersistedData: the record is not a non-negative integer
    """
    if raw is None:
        return 0
    data = _parse(key, raw)
    if isinstance(data, bool) or not isinstance(data, int) or data < 0:
        raise CorruptPersistedData(key, ERROR_BAD_COUNTER)
    return data
