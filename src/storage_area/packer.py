"""Value packers: turn values into backing-store payloads and back.

Both strategies run the value through StructuredCodec first, so they accept
the same set of types and keep cycles and shared references. They differ
only in the bytes they hand to the backing store:

- TextPacker (default): compact JSON text
- BinaryPacker: msgpack bytes, blobs stored raw instead of base64
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

import msgpack  # type: ignore[import-untyped]

from storage_area._internal.json_helpers import dumps_compact
from storage_area.json_helpers import JSONValue
from storage_area.structured import StructuredCodec
from storage_area.types import MalformedValueError, Payload, PayloadFormat


class ValuePacker(ABC):
    """Strategy for turning values into payloads.

    options is an open, per-call bag of backend-specific knobs (for example
    expiration). A strategy is free to ignore keys it does not know.
    """

    payload_format: PayloadFormat

    @abstractmethod
    def pack(self, value: object, options: Optional[Mapping[str, Any]] = None) -> Payload:
        """Turn a value into a payload.

        Raises:
            UnsupportedTypeError: If value contains a type with no codec
        """
        ...

    @abstractmethod
    def unpack(
        self,
        payload: Optional[Payload],
        options: Optional[Mapping[str, Any]] = None,
        default: Any = None,
    ) -> Any:
        """Turn a payload back into a value.

        An absent payload (None) returns default instead of raising.

        Raises:
            MalformedValueError: If payload cannot be decoded
        """
        ...


class TextPacker(ValuePacker):
    """Packs values as structured-clone envelopes in JSON text."""

    payload_format: PayloadFormat = "text"

    def __init__(self) -> None:
        self._codec = StructuredCodec()

    def pack(self, value: object, options: Optional[Mapping[str, Any]] = None) -> str:
        envelope: JSONValue = self._codec.encapsulate(value)  # type: ignore[assignment]
        return dumps_compact(envelope)

    def unpack(
        self,
        payload: Optional[Payload],
        options: Optional[Mapping[str, Any]] = None,
        default: Any = None,
    ) -> Any:
        if payload is None:
            return default
        try:
            envelope = json.loads(payload)
        except ValueError as e:
            raise MalformedValueError(f"Payload is not valid JSON: {e}") from e
        return self._codec.revive(envelope)


class BinaryPacker(ValuePacker):
    """Packs values as structured-clone envelopes in msgpack.

    Smaller and faster than TextPacker, and binary data is not inflated by
    base64. Payloads are not readable as text.
    """

    payload_format: PayloadFormat = "bytes"

    def __init__(self) -> None:
        self._codec = StructuredCodec(binary=True)

    def pack(self, value: object, options: Optional[Mapping[str, Any]] = None) -> bytes:
        data: bytes = msgpack.packb(self._codec.encapsulate(value), use_bin_type=True)
        return data

    def unpack(
        self,
        payload: Optional[Payload],
        options: Optional[Mapping[str, Any]] = None,
        default: Any = None,
    ) -> Any:
        if payload is None:
            return default
        if isinstance(payload, str):
            raise MalformedValueError("BinaryPacker expects a bytes payload, got str")
        try:
            envelope = msgpack.unpackb(payload, raw=False, strict_map_key=False)
        except ValueError as e:
            raise MalformedValueError(f"Payload is not valid msgpack: {e}") from e
        return self._codec.revive(envelope)
