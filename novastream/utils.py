"""Utility helpers for the NovaStream content service."""

from __future__ import annotations

import json
import time
from typing import Any, Collection


LOCAL_ID_PREFIX = "item_"


def generate_local_id(existing: Collection[str] = ()) -> str:
    """Return a locally generated identifier based on the current time.

    Identifiers follow ``item_<epoch milliseconds>``; when two items are created
    within the same millisecond the timestamp is bumped until it is unused.
    """

    stamp = int(time.time() * 1000)
    candidate = f"{LOCAL_ID_PREFIX}{stamp}"
    while candidate in existing:
        stamp += 1
        candidate = f"{LOCAL_ID_PREFIX}{stamp}"
    return candidate


def is_local_id(item_id: str) -> bool:
    """Return whether the identifier was generated without the remote store."""

    return item_id.startswith(LOCAL_ID_PREFIX)


def decode_json_list(value: Any) -> list[Any]:
    """Return ``value`` as a list, decoding JSON text when necessary.

    Malformed JSON and non-list payloads yield an empty list.
    """

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return value
