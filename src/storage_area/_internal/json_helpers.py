"""Internal envelope helper functions not exposed in public API."""

import json
from typing import Dict, List

from storage_area.json_helpers import EnvelopeValue, JSONValue
from storage_area.types import MalformedValueError


def get_str(node: Dict[str, EnvelopeValue], key: str) -> str:
    """Extract string field from a tagged envelope node.

    Raises:
        MalformedValueError: If field is missing or not a string
    """
    value = node.get(key)
    if not isinstance(value, str):
        raise MalformedValueError(
            f"Expected string for field '{key}', got {type(value).__name__}: {value!r}"
        )
    return value


def get_int(node: Dict[str, EnvelopeValue], key: str) -> int:
    """Extract int field from a tagged envelope node.

    Note: bool is a subclass of int in Python, so we explicitly reject booleans.

    Raises:
        MalformedValueError: If field is missing, not an int, or a bool
    """
    value = node.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedValueError(
            f"Expected int for field '{key}', got {type(value).__name__}: {value!r}"
        )
    return value


def get_list(node: Dict[str, EnvelopeValue], key: str) -> List[EnvelopeValue]:
    """Extract list field from a tagged envelope node.

    Raises:
        MalformedValueError: If field is missing or not a list
    """
    value = node.get(key)
    if not isinstance(value, list):
        raise MalformedValueError(
            f"Expected list for field '{key}', got {type(value).__name__}: {value!r}"
        )
    return value


def dumps_compact(data: JSONValue) -> str:
    """Serialize an envelope to compact JSON text.

    Keys are NOT sorted: back-reference indices follow the traversal order
    of each object, so member order must survive the round trip.

    Uses ensure_ascii=True (default) so the payload is plain ASCII on every
    backing store.
    """
    return json.dumps(data, separators=(",", ":"), allow_nan=False)
