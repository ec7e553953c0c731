"""storage-area - Async key-value storage with structured keys over flat string-keyed stores."""

from storage_area.area import StorageArea
from storage_area.backing_store import BackingStore, InMemoryBackingStore
from storage_area.json_helpers import EnvelopeValue, JSONValue
from storage_area.keys import assert_allowed_key, decode_key, encode_key, is_allowed_key
from storage_area.packer import BinaryPacker, TextPacker, ValuePacker
from storage_area.s3_store import S3BackingStore, create_s3_backing_store
from storage_area.structured import StructuredCodec
from storage_area.types import (
    AllowedKey,
    InvalidKeyError,
    Key,
    KeyListPage,
    ListedKey,
    ListOptions,
    MalformedKeyError,
    MalformedValueError,
    Payload,
    PayloadFormat,
    PutOptions,
    S3Credentials,
    S3Overrides,
    S3StoreConfig,
    StorageAreaError,
    UnsupportedTypeError,
)

__version__ = "0.4.0"

__all__ = [
    # Storage area
    "StorageArea",
    # Key codec
    "encode_key",
    "decode_key",
    "assert_allowed_key",
    "is_allowed_key",
    # Value packing
    "ValuePacker",
    "TextPacker",
    "BinaryPacker",
    "StructuredCodec",
    # Backing stores
    "BackingStore",
    "InMemoryBackingStore",
    "S3BackingStore",
    "create_s3_backing_store",
    # Core types
    "AllowedKey",
    "Key",
    "Payload",
    "PayloadFormat",
    "JSONValue",
    "EnvelopeValue",
    # Option and listing types
    "PutOptions",
    "ListOptions",
    "ListedKey",
    "KeyListPage",
    # Config types
    "S3StoreConfig",
    "S3Overrides",
    "S3Credentials",
    # Exceptions
    "StorageAreaError",
    "InvalidKeyError",
    "MalformedKeyError",
    "MalformedValueError",
    "UnsupportedTypeError",
]
