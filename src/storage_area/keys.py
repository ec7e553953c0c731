"""String encoding for IndexedDB-like keys.

The backing store only accepts flat string keys, while a storage area accepts
composite keys. The format keeps plain strings unmodified so the common case
carries no extra weight, and tags everything else with two characters:

    'some key'        => 'some key'
    300               => 'n:300'
    datetime(1970,1,1,tzinfo=utc)
                      => 'd:1970-01-01T00:00:00.000Z'
    b'\\x00\\x01'         => 'b:AAE='
    ['foo', 'bar', 3] => '<foo|bar|n:3>'
    ['foo', [1, 2]]   => '<foo|<n:1|n:2>>'
    'with|re<served>' => 's:with%7Cre%3Cserved%3E'
    'e:vil'           => 's:e%3Avil'
    ''                => 's:'

Strings are percent-encoded only when they are empty, look like a tag, or
contain one of the array delimiters '<', '|', '>'.
"""

import base64
import binascii
import math
import re
from array import array
from datetime import datetime, timezone
from typing import Any, List, Set, Union
from urllib.parse import quote, unquote

from storage_area._internal.number_format import number_from_text, number_to_text
from storage_area.types import AllowedKey, InvalidKeyError, Key, MalformedKeyError

# Tagged data type (number, date, buffer, string-with-reserved-chars).
# ASCII only: 'é:x' is a plain string.
TYPED_REP = re.compile(r"^(\w):", re.ASCII)

ARRAY_DELIMITERS = re.compile(r"[<|>]")

# Characters encodeURIComponent leaves alone, besides alphanumerics
URI_COMPONENT_SAFE = "-_.!~*'()"

BINARY_TYPES = (bytes, bytearray, memoryview, array)


def encode_key(key: AllowedKey) -> str:
    """Encode a key as a single backing-store string.

    Args:
        key: A key that passed assert_allowed_key()

    Returns:
        The canonical string form of the key

    Raises:
        InvalidKeyError: If the key (or a nested element) is NaN, cyclic,
            contains None, or has a type that is not allowed as a key
    """
    return _safe_key_to_string(_to_safe_key(key, set()))


def decode_key(text: str) -> Key:
    """Decode a string produced by encode_key().

    Args:
        text: Encoded key

    Returns:
        The round-tripped key

    Raises:
        MalformedKeyError: If text does not follow the key grammar
    """
    if not ARRAY_DELIMITERS.search(text):
        return _part_to_key(text)

    stack: List[List[Key]] = []
    prev = 0
    after_close = False
    for match in ARRAY_DELIMITERS.finditer(text):
        char = match.group()
        index = match.start()
        # A nested '>' must be followed directly by '|' or '>'
        if after_close and (char == "<" or prev != index):
            raise MalformedKeyError(f"Expected '|' or '>' after nested array at {prev}: {text!r}")
        after_close = char == ">"
        if char == "<":
            if prev != index:
                raise MalformedKeyError(f"Unexpected text before '<' at {index}: {text!r}")
            stack.append([])
        else:
            if not stack:
                raise MalformedKeyError(f"Unmatched {char!r} at {index}: {text!r}")
            if prev != index:
                stack[-1].append(_part_to_key(text[prev:index]))
            if char == ">":
                result = stack.pop()
                if stack:
                    stack[-1].append(result)
                elif index != len(text) - 1:
                    raise MalformedKeyError(f"Trailing text after key at {index + 1}: {text!r}")
                else:
                    return result
        prev = index + 1

    raise MalformedKeyError(f"Unterminated array in key: {text!r}")


def is_allowed_key(key: object) -> bool:
    """Return True if key has a type allowed as a key.

    Array elements are not inspected; encode_key() catches those.
    """
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    if isinstance(key, float):
        return math.isfinite(key)
    return isinstance(key, (str, datetime, list, tuple) + BINARY_TYPES)


def assert_allowed_key(key: object) -> None:
    """Raise InvalidKeyError unless key is allowed as a key."""
    if not is_allowed_key(key):
        raise InvalidKeyError(f"The given value is not allowed as a key: {key!r}")


def _to_safe_key(value: Any, seen: Set[int]) -> Key:
    """Convert a value to a key, rejecting anything not representable.

    Follows IndexedDB's "convert a value to a key" steps. Binary views are
    copied so later mutation of the caller's buffer cannot alias the key.
    """
    if isinstance(value, bool):
        raise InvalidKeyError(f"Booleans are not allowed as keys: {value!r}")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            raise InvalidKeyError("NaN is not allowed as a key")
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return _to_utc_millis(value)
    if isinstance(value, BINARY_TYPES):
        return memoryview(value).tobytes()
    if isinstance(value, (list, tuple)):
        if id(value) in seen:
            raise InvalidKeyError("Cyclic arrays are not allowed as keys")
        seen.add(id(value))
        keys: List[Key] = []
        for i, entry in enumerate(value):
            if entry is None:
                raise InvalidKeyError(f"Array key has no value at index {i}")
            keys.append(_to_safe_key(entry, seen))
        seen.discard(id(value))
        return keys
    raise InvalidKeyError(f"The given value is not allowed as a key: {value!r}")


def _to_utc_millis(value: datetime) -> datetime:
    """Normalize a datetime to UTC at millisecond precision (naive means UTC)."""
    try:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
    except (OverflowError, ValueError) as e:
        raise InvalidKeyError(f"Date is not a valid instant: {value!r}") from e
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def _safe_key_to_string(key: Key) -> str:
    """Stringify a key that has already been through _to_safe_key()."""
    if isinstance(key, list):
        return "<" + "|".join(_safe_key_to_string(k) for k in key) + ">"
    if isinstance(key, str):
        if key == "" or TYPED_REP.match(key) or ARRAY_DELIMITERS.search(key):
            try:
                return "s:" + quote(key, safe=URI_COMPONENT_SAFE, encoding="utf-8", errors="strict")
            except UnicodeEncodeError as e:
                raise InvalidKeyError(f"String key is not valid Unicode: {key!r}") from e
        return key
    if isinstance(key, (int, float)):
        try:
            return "n:" + number_to_text(key)
        except ValueError as e:
            raise InvalidKeyError(f"Number cannot be written as a key: {e}") from e
    if isinstance(key, datetime):
        # Already UTC from _to_utc_millis(), so the offset is always +00:00
        return "d:" + key.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    if isinstance(key, bytes):
        return "b:" + base64.b64encode(key).decode("ascii")
    raise InvalidKeyError(f"The given value is not allowed as a key: {key!r}")


def _part_to_key(part: str) -> Union[str, int, float, datetime, bytes]:
    """Strip the tag from a single (non-array) key string and convert it."""
    match = TYPED_REP.match(part)
    if match is None:
        return part

    tag = match.group(1)
    data = part[2:]
    try:
        if tag == "n":
            return number_from_text(data)
        if tag == "d":
            return _parse_date(data)
        if tag == "b":
            return base64.b64decode(data, validate=True)
        if tag == "s":
            return _percent_decode(data)
    except (ValueError, binascii.Error) as e:
        raise MalformedKeyError(f"Invalid '{tag}:' key part {part!r}: {e}") from e

    # Unknown tag: never produced by encode_key(), read as a plain string
    return part


def _parse_date(data: str) -> datetime:
    """Parse an ISO 8601 instant and return it as an aware UTC datetime."""
    if data.endswith("Z"):
        data = data[:-1] + "+00:00"
    parsed = datetime.fromisoformat(data)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _percent_decode(data: str) -> str:
    """Inverse of the s: escaping; rejects stray '%' and non-UTF-8 escapes."""
    if re.search(r"%(?![0-9A-Fa-f]{2})", data):
        raise ValueError("malformed percent escape")
    return unquote(data, encoding="utf-8", errors="strict")
