"""Structured-clone style encapsulation of Python value graphs.

encapsulate() turns an arbitrary value graph into a JSON-safe envelope and
revive() turns it back. Beyond plain JSON the envelope carries:

- Tagged nodes, {"$t": <tag>, ...}, for types JSON has no form for:
  Map, Set, FrozenSet, Tuple, Date, Bytes, ByteArray, TypedArray, RegExp,
  Error, non-finite Number and (binary mode only) BigInt.
- Back-references, {"$r": <index>}, for the second and later visits of the
  same container object. Containers are numbered in pre-order of first
  visit, so the reviver reproduces the numbering by walking the envelope in
  the same order. Shared references and cycles come back with the same
  identity structure they went in with.

A dict is written as a plain JSON object only when all its keys are strings
and none of them is "$t" or "$r"; any other dict becomes a Map node.
"""

import base64
import binascii
import math
import re
from array import array
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Type

from storage_area._internal.json_helpers import get_int, get_list, get_str
from storage_area.json_helpers import EnvelopeValue
from storage_area.types import MalformedValueError, UnsupportedTypeError

TYPE_KEY = "$t"
REF_KEY = "$r"

# Exception classes that survive a round trip by name
ERROR_TYPES: Dict[str, Type[BaseException]] = {
    cls.__name__: cls
    for cls in (
        Exception,
        ArithmeticError,
        AssertionError,
        AttributeError,
        IndexError,
        KeyError,
        LookupError,
        NameError,
        NotImplementedError,
        OverflowError,
        RecursionError,
        RuntimeError,
        SyntaxError,
        TypeError,
        UnicodeError,
        ValueError,
        ZeroDivisionError,
    )
}

NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}

# msgpack has no integer type wider than 64 bits
MSGPACK_INT_MIN = -(2**63)
MSGPACK_INT_MAX = 2**64 - 1

# Containers numbered in the back-reference arena
ARENA_TYPES = (list, dict, tuple, set, frozenset, bytearray, array)
IMMUTABLE_TYPES = (tuple, frozenset)


class StructuredCodec:
    """Encapsulates and revives structured values.

    Args:
        binary: Keep blob payloads as raw bytes instead of base64 text.
            Only useful when the envelope is serialized by a format with a
            native binary type (msgpack).
    """

    def __init__(self, binary: bool = False) -> None:
        self.binary = binary

    def encapsulate(self, value: object) -> EnvelopeValue:
        """Convert a value graph to an envelope.

        Raises:
            UnsupportedTypeError: If the graph contains a type with no codec,
                or a cycle through a tuple or frozenset
        """
        return _Encapsulator(self.binary).visit(value)

    def revive(self, envelope: EnvelopeValue) -> Any:
        """Rebuild the value graph an envelope was made from.

        Raises:
            MalformedValueError: If envelope does not follow the envelope grammar
        """
        return _Reviver().visit(envelope)


class _Encapsulator:
    """Single-use walker for one encapsulate() call."""

    def __init__(self, binary: bool) -> None:
        self._binary = binary
        self._arena: Dict[int, int] = {}  # id(container) -> index
        self._open_immutables: Set[int] = set()

    def visit(self, value: object) -> EnvelopeValue:
        if value is None or isinstance(value, (bool, str)):
            return value
        if isinstance(value, int):
            if self._binary and not MSGPACK_INT_MIN <= value <= MSGPACK_INT_MAX:
                return {TYPE_KEY: "BigInt", "v": str(value)}
            return value
        if isinstance(value, float):
            if math.isfinite(value):
                return value
            text = "NaN" if math.isnan(value) else ("Infinity" if value > 0 else "-Infinity")
            return {TYPE_KEY: "Number", "v": text}
        if isinstance(value, datetime):
            return {TYPE_KEY: "Date", "v": value.isoformat()}
        if isinstance(value, (bytes, memoryview)):
            return {TYPE_KEY: "Bytes", "v": self._blob(bytes(value))}
        if isinstance(value, re.Pattern):
            return self._pattern(value)
        if isinstance(value, BaseException):
            return self._error(value)
        if isinstance(value, ARENA_TYPES):
            index = self._arena.get(id(value))
            if index is not None:
                if id(value) in self._open_immutables:
                    raise UnsupportedTypeError(
                        f"Cannot pack a cycle through an immutable {type(value).__name__}"
                    )
                return {REF_KEY: index}
            self._arena[id(value)] = len(self._arena)
            return self._container(value)
        raise UnsupportedTypeError(f"Cannot pack value of type {type(value).__name__}")

    def _container(self, value: object) -> EnvelopeValue:
        if isinstance(value, list):
            return [self.visit(item) for item in value]
        if isinstance(value, dict):
            if all(isinstance(k, str) for k in value) and TYPE_KEY not in value and REF_KEY not in value:
                return {k: self.visit(v) for k, v in value.items()}
            return {TYPE_KEY: "Map", "v": [[self.visit(k), self.visit(v)] for k, v in value.items()]}
        if isinstance(value, IMMUTABLE_TYPES):
            self._open_immutables.add(id(value))
            items = [self.visit(item) for item in value]
            self._open_immutables.discard(id(value))
            tag = "Tuple" if isinstance(value, tuple) else "FrozenSet"
            return {TYPE_KEY: tag, "v": items}
        if isinstance(value, set):
            return {TYPE_KEY: "Set", "v": [self.visit(item) for item in value]}
        if isinstance(value, bytearray):
            return {TYPE_KEY: "ByteArray", "v": self._blob(bytes(value))}
        if isinstance(value, array):
            return {TYPE_KEY: "TypedArray", "typecode": value.typecode, "v": self._blob(value.tobytes())}
        raise UnsupportedTypeError(f"Cannot pack value of type {type(value).__name__}")

    def _blob(self, data: bytes) -> EnvelopeValue:
        if self._binary:
            return data
        return base64.b64encode(data).decode("ascii")

    def _pattern(self, value: "re.Pattern[Any]") -> EnvelopeValue:
        if not isinstance(value.pattern, str):
            raise UnsupportedTypeError("Cannot pack a bytes regular expression")
        return {TYPE_KEY: "RegExp", "source": value.pattern, "flags": int(value.flags)}

    def _error(self, value: BaseException) -> EnvelopeValue:
        name = next(
            (cls.__name__ for cls in type(value).__mro__ if ERROR_TYPES.get(cls.__name__) is cls),
            None,
        )
        if name is None:
            raise UnsupportedTypeError(f"Cannot pack exception of type {type(value).__name__}")
        message = str(value.args[0]) if value.args else ""
        return {TYPE_KEY: "Error", "name": name, "message": message}


class _Reviver:
    """Single-use walker for one revive() call."""

    def __init__(self) -> None:
        self._arena: List[Any] = []
        self._pending: Set[int] = set()  # immutable containers still being built

    def visit(self, node: EnvelopeValue) -> Any:
        if node is None or isinstance(node, (bool, int, float, str)):
            return node
        if isinstance(node, list):
            result: List[Any] = []
            self._arena.append(result)
            for item in node:
                result.append(self.visit(item))
            return result
        if isinstance(node, dict):
            if REF_KEY in node:
                return self._reference(node)
            if TYPE_KEY in node:
                return self._tagged(node)
            obj: Dict[str, Any] = {}
            self._arena.append(obj)
            for key, value in node.items():
                obj[key] = self.visit(value)
            return obj
        raise MalformedValueError(f"Unexpected {type(node).__name__} in envelope")

    def _reference(self, node: Dict[str, EnvelopeValue]) -> Any:
        index = get_int(node, REF_KEY)
        if not 0 <= index < len(self._arena) or index in self._pending:
            raise MalformedValueError(f"Dangling back-reference: {index}")
        return self._arena[index]

    def _tagged(self, node: Dict[str, EnvelopeValue]) -> Any:
        tag = get_str(node, TYPE_KEY)

        if tag == "Map":
            mapping: Dict[Any, Any] = {}
            self._arena.append(mapping)
            for entry in get_list(node, "v"):
                if not isinstance(entry, list) or len(entry) != 2:
                    raise MalformedValueError(f"Map entry must be a [key, value] pair: {entry!r}")
                key = self.visit(entry[0])
                try:
                    mapping[key] = self.visit(entry[1])
                except TypeError as e:
                    raise MalformedValueError(f"Unhashable Map key: {key!r}") from e
            return mapping

        if tag == "Set":
            members: Set[Any] = set()
            self._arena.append(members)
            for item in get_list(node, "v"):
                try:
                    members.add(self.visit(item))
                except TypeError as e:
                    raise MalformedValueError("Unhashable Set member") from e
            return members

        if tag in ("Tuple", "FrozenSet"):
            index = len(self._arena)
            self._arena.append(None)
            self._pending.add(index)
            items = [self.visit(item) for item in get_list(node, "v")]
            try:
                built: Any = tuple(items) if tag == "Tuple" else frozenset(items)
            except TypeError as e:
                raise MalformedValueError("Unhashable FrozenSet member") from e
            self._arena[index] = built
            self._pending.discard(index)
            return built

        if tag == "ByteArray":
            buffer = bytearray(self._blob(node))
            self._arena.append(buffer)
            return buffer

        if tag == "TypedArray":
            typecode = get_str(node, "typecode")
            try:
                typed = array(typecode, self._blob(node))
            except (TypeError, ValueError) as e:
                raise MalformedValueError(f"Invalid TypedArray: {e}") from e
            self._arena.append(typed)
            return typed

        if tag == "Bytes":
            return self._blob(node)

        if tag == "Date":
            try:
                return datetime.fromisoformat(get_str(node, "v"))
            except ValueError as e:
                raise MalformedValueError(f"Invalid Date: {e}") from e

        if tag == "RegExp":
            try:
                return re.compile(get_str(node, "source"), get_int(node, "flags"))
            except (re.error, ValueError) as e:
                raise MalformedValueError(f"Invalid RegExp: {e}") from e

        if tag == "Error":
            cls = ERROR_TYPES.get(get_str(node, "name"), Exception)
            message = get_str(node, "message")
            return cls(message) if message else cls()

        if tag == "BigInt":
            text = get_str(node, "v")
            try:
                return int(text)
            except ValueError as e:
                raise MalformedValueError(f"Invalid BigInt: {text!r}") from e

        if tag == "Number":
            text = get_str(node, "v")
            if text not in NON_FINITE:
                raise MalformedValueError(f"Invalid Number: {text!r}")
            return NON_FINITE[text]

        raise MalformedValueError(f"Unknown envelope tag: {tag!r}")

    def _blob(self, node: Dict[str, EnvelopeValue]) -> bytes:
        data: Optional[EnvelopeValue] = node.get("v")
        if isinstance(data, bytes):
            return data
        if isinstance(data, str):
            try:
                return base64.b64decode(data, validate=True)
            except binascii.Error as e:
                raise MalformedValueError(f"Invalid base64 blob: {e}") from e
        raise MalformedValueError(f"Expected blob data, got {type(data).__name__}")
