"""Tests for the text (JSON) and binary (msgpack) value packers."""

import json
from datetime import datetime, timezone
from typing import Any

import msgpack  # type: ignore[import-untyped]
import pytest

from storage_area.packer import BinaryPacker, TextPacker, ValuePacker
from storage_area.types import MalformedValueError, UnsupportedTypeError

PACKERS = [TextPacker, BinaryPacker]


def sample_value() -> Any:
    shared = {"id": 7}
    value: dict = {
        "name": "Ada",
        "joined": datetime(2020, 2, 29, 12, 0, tzinfo=timezone.utc),
        "tags": {"admin", "ops"},
        "scores": {1: 10.5, 2: -3},
        "avatar": b"\x89PNG\r\n",
        "owner": shared,
        "editor": shared,
        "pair": (1, "two"),
    }
    value["self"] = value
    return value


@pytest.mark.parametrize("packer_cls", PACKERS)
class TestPackers:
    """Behavior shared by both packers."""

    def test_round_trip(self, packer_cls: type) -> None:
        """A graph with tagged types, shared refs and a cycle survives."""
        packer: ValuePacker = packer_cls()
        revived = packer.unpack(packer.pack(sample_value()))

        assert revived["name"] == "Ada"
        assert revived["joined"] == datetime(2020, 2, 29, 12, 0, tzinfo=timezone.utc)
        assert revived["tags"] == {"admin", "ops"}
        assert revived["scores"] == {1: 10.5, 2: -3}
        assert revived["avatar"] == b"\x89PNG\r\n"
        assert revived["owner"] is revived["editor"]
        assert revived["pair"] == (1, "two")
        assert revived["self"] is revived

    def test_payload_type_matches_format(self, packer_cls: type) -> None:
        """Text packers return str, binary packers return bytes."""
        packer: ValuePacker = packer_cls()
        payload = packer.pack({"a": 1})
        expected = str if packer.payload_format == "text" else bytes
        assert isinstance(payload, expected)

    def test_absent_payload_returns_default(self, packer_cls: type) -> None:
        """None unpacks to the caller's default."""
        packer: ValuePacker = packer_cls()
        assert packer.unpack(None) is None
        assert packer.unpack(None, default=[]) == []

    def test_options_are_ignored(self, packer_cls: type) -> None:
        """Unknown option keys do not change the payload."""
        packer: ValuePacker = packer_cls()
        assert packer.pack([1, 2], {"expiration_ttl": 60}) == packer.pack([1, 2])

    def test_unsupported_type(self, packer_cls: type) -> None:
        """Values without a codec are rejected at pack time."""
        with pytest.raises(UnsupportedTypeError):
            packer_cls().pack({"fn": print})

    def test_big_int(self, packer_cls: type) -> None:
        """Arbitrary-size ints round-trip in both formats."""
        packer: ValuePacker = packer_cls()
        for value in (2**64, -(2**63) - 1, 10**40):
            assert packer.unpack(packer.pack(value)) == value


class TestTextPacker:
    """TextPacker specifics."""

    def test_payload_is_compact_json(self) -> None:
        """Plain JSON values pack to compact JSON."""
        assert TextPacker().pack({"a": [1, "x"]}) == '{"a":[1,"x"]}'

    def test_payload_is_ascii(self) -> None:
        """Non-ASCII text is escaped."""
        payload = TextPacker().pack("日本")
        assert payload.isascii()
        assert json.loads(payload) == "日本"

    def test_member_order_is_preserved(self) -> None:
        """Object members are not re-sorted."""
        assert TextPacker().pack({"b": 1, "a": 2}) == '{"b":1,"a":2}'

    def test_invalid_json(self) -> None:
        """Garbage text is MalformedValueError."""
        with pytest.raises(MalformedValueError, match="not valid JSON"):
            TextPacker().unpack("{not json")

    def test_malformed_envelope(self) -> None:
        """Valid JSON with a bad envelope is MalformedValueError."""
        with pytest.raises(MalformedValueError):
            TextPacker().unpack('{"$t":"Unknown"}')


class TestBinaryPacker:
    """BinaryPacker specifics."""

    def test_payload_is_msgpack(self) -> None:
        """Plain values pack to plain msgpack."""
        assert msgpack.unpackb(BinaryPacker().pack({"a": [1, "x"]}), raw=False) == {"a": [1, "x"]}

    def test_blobs_are_raw(self) -> None:
        """Binary data is not base64 encoded."""
        data = bytes(range(256))
        payload = BinaryPacker().pack(data)
        assert data in payload

    def test_smaller_than_text_for_binary_data(self) -> None:
        """Raw blobs beat base64 text on size."""
        data = bytes(range(256)) * 4
        assert len(BinaryPacker().pack(data)) < len(TextPacker().pack(data))

    def test_str_payload_is_rejected(self) -> None:
        """Text payloads cannot be unpacked as msgpack."""
        with pytest.raises(MalformedValueError, match="bytes payload"):
            BinaryPacker().unpack("text")

    @pytest.mark.parametrize("payload", [b"\xc1", b"\x92\x01", b"\x01\x02"])
    def test_invalid_msgpack(self, payload: bytes) -> None:
        """Garbage bytes are MalformedValueError."""
        with pytest.raises(MalformedValueError):
            BinaryPacker().unpack(payload)
