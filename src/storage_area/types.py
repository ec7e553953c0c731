"""Type definitions for storage-area."""

from array import array
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, NotRequired, Optional, Sequence, TypedDict, Union

# A key as it comes back out of decode_key().
# Views, tuples and naive datetimes do not survive the round trip.
Key = Union[str, int, float, datetime, bytes, List["Key"]]

# Anything the key validator lets through
AllowedKey = Union[
    str,
    int,
    float,
    datetime,
    bytes,
    bytearray,
    memoryview,
    array,
    Sequence["AllowedKey"],
]

# Payload handed to / returned from the backing store
Payload = Union[str, bytes]

# Format a packer wants its payload read back in
PayloadFormat = Literal["text", "bytes"]


class PutOptions(TypedDict, total=False):
    """Options for a single write.

    Expiration fields are passed through to the backing store untouched.
    Stores that do not support them ignore them.
    """

    expiration: Union[int, str]  # Absolute expiry, seconds since epoch
    expiration_ttl: Union[int, str]  # Relative expiry, seconds


class ListOptions(TypedDict, total=False):
    """Options for a key listing.

    Callers set prefix and limit; cursor is managed by the paginator.
    """

    prefix: str
    limit: int
    cursor: str


class ListedKey(TypedDict):
    """One key in a listing page."""

    name: str


class KeyListPage(TypedDict):
    """One page of a cursor-paginated listing."""

    keys: List[ListedKey]
    complete: bool
    cursor: NotRequired[Optional[str]]


@dataclass
class S3Credentials:
    """Explicit AWS credentials (not needed with IAM roles)."""

    aws_access_key_id: str
    aws_secret_access_key: str


@dataclass
class S3Overrides:
    """Override default S3 client behavior."""

    # Custom S3 endpoint URL (MinIO, LocalStack)
    endpoint_url: Optional[str] = None

    credentials: Optional[S3Credentials] = None

    # Use path-style URLs instead of virtual-hosted style (required for MinIO)
    force_path_style: bool = False


@dataclass
class S3StoreConfig:
    """S3 backing store configuration."""

    s3_bucket: str
    s3_region: str

    # Prepended to every object key; keys outside it are never listed
    s3_prefix: str = ""

    overrides: Optional[S3Overrides] = None


class StorageAreaError(Exception):
    """Base class for all storage-area errors."""

    pass


class InvalidKeyError(StorageAreaError):
    """Raised when a key has a disallowed type or value.

    Always raised before any backing store I/O.
    """

    pass


class MalformedKeyError(StorageAreaError):
    """Raised when a stored key string does not parse as an encoded key."""

    pass


class UnsupportedTypeError(StorageAreaError):
    """Raised when a value contains a type the packer cannot encapsulate."""

    pass


class MalformedValueError(StorageAreaError):
    """Raised when a stored payload is not a valid packed value."""

    pass
