"""StorageArea: async key-value access with structured keys and values."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Mapping, Optional, Tuple

from storage_area._internal.pagination import paginate_keys
from storage_area.backing_store import BackingStore
from storage_area.keys import assert_allowed_key, decode_key, encode_key
from storage_area.packer import TextPacker, ValuePacker
from storage_area.types import AllowedKey, Key, ListOptions, PutOptions

logger = logging.getLogger(__name__)

# Separates the area name from the encoded key in named areas
DIV = "/"


class StorageArea:
    """Async key-value storage over a flat string-keyed backing store.

    Keys may be strings, numbers, datetimes, binary data or (nested) lists
    of those; values may be any structured-cloneable graph. Keys are encoded
    with encode_key() and values packed by the configured ValuePacker.

    Usage:
        area = StorageArea(InMemoryBackingStore())
        await area.set(["user", 42], {"name": "Ada", "tags": {"admin"}})
        user = await area.get(["user", 42])
        async for key, value in area.entries():
            ...

    A named area stores its keys as "<name>/<encoded key>" and only lists
    keys under that prefix, so several areas can share one backing store.

    Key validation and value packing happen before any backing store I/O:
    a rejected key or value never causes a partial write.
    """

    def __init__(
        self,
        store: BackingStore,
        name: Optional[str] = None,
        packer: Optional[ValuePacker] = None,
    ) -> None:
        """Initialize a storage area.

        Args:
            store: Backing store to persist into
            name: Optional area name used as key prefix
            packer: Value packing strategy (default: TextPacker)
        """
        self._store = store
        self._name = name
        self._packer: ValuePacker = packer if packer is not None else TextPacker()
        self._key_prefix = f"{name}{DIV}" if name is not None else ""

    # =========================================================================
    # Single-key Operations
    # =========================================================================

    async def get(self, key: AllowedKey, options: Optional[Mapping[str, Any]] = None) -> Any:
        """Return the value stored under key, or None if there is none.

        Raises:
            InvalidKeyError: If key is not allowed as a key
            MalformedValueError: If the stored payload cannot be unpacked
        """
        store_key = self._encode_key(key)
        payload = await self._store.get(store_key, self._packer.payload_format)
        return self._packer.unpack(payload, options)

    async def set(self, key: AllowedKey, value: Any, options: Optional[PutOptions] = None) -> None:
        """Store value under key.  Setting None deletes the key.

        Args:
            key: Key to write
            value: Value to store
            options: Passed through to the backing store (e.g. expiration)

        Raises:
            InvalidKeyError: If key is not allowed as a key
            UnsupportedTypeError: If value contains a type with no codec
        """
        store_key = self._encode_key(key)
        if value is None:
            await self._store.delete(store_key)
            return

        payload = self._packer.pack(value, options)
        await self._store.put(store_key, payload, options)

    async def delete(self, key: AllowedKey) -> None:
        """Delete key.  No-op if the key does not exist.

        Raises:
            InvalidKeyError: If key is not allowed as a key
        """
        await self._store.delete(self._encode_key(key))

    # =========================================================================
    # Multi-key Operations
    # =========================================================================

    async def clear(self, options: Optional[ListOptions] = None) -> None:
        """Delete every key in the area (or under options["prefix"]).

        Keys are deleted one at a time as they are listed. If the backing
        store fails midway, the keys already deleted stay deleted and the
        error propagates.
        """
        count = 0
        async for store_key in self._paginate(options):
            await self._store.delete(store_key)
            count += 1
        logger.debug(f"Cleared {count} keys from storage area {self._name!r}")

    async def keys(self, options: Optional[ListOptions] = None) -> AsyncIterator[Key]:
        """Iterate over all keys, decoded.

        Raises:
            MalformedKeyError: If a listed key was not written by encode_key()
        """
        async for store_key in self._paginate(options):
            yield self._decode_key(store_key)

    async def values(self, options: Optional[ListOptions] = None) -> AsyncIterator[Any]:
        """Iterate over all values, one get per key."""
        async for store_key in self._paginate(options):
            payload = await self._store.get(store_key, self._packer.payload_format)
            yield self._packer.unpack(payload, options)

    async def entries(self, options: Optional[ListOptions] = None) -> AsyncIterator[Tuple[Key, Any]]:
        """Iterate over all (key, value) pairs, one get per key."""
        async for store_key in self._paginate(options):
            payload = await self._store.get(store_key, self._packer.payload_format)
            yield self._decode_key(store_key), self._packer.unpack(payload, options)

    # =========================================================================
    # Properties
    # =========================================================================

    def backing_store(self) -> BackingStore:
        """The underlying backing store."""
        return self._store

    @property
    def name(self) -> Optional[str]:
        """The area name, if keys are namespaced."""
        return self._name

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _encode_key(self, key: AllowedKey) -> str:
        """Validate and encode a key, including the area prefix."""
        assert_allowed_key(key)
        return f"{self._key_prefix}{encode_key(key)}"

    def _decode_key(self, store_key: str) -> Key:
        """Strip the area prefix and decode."""
        return decode_key(store_key[len(self._key_prefix) :])

    def _paginate(self, options: Optional[ListOptions]) -> AsyncIterator[str]:
        """List backing store keys belonging to this area."""
        list_options: ListOptions = dict(options or {})  # type: ignore[assignment]
        list_options["prefix"] = self._key_prefix + list_options.get("prefix", "")
        return paginate_keys(self._store, list_options)
