"""Backing store contract, plus a dict-backed store for development and tests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import Any, Dict, Mapping, Optional

from storage_area.types import KeyListPage, ListedKey, ListOptions, Payload, PayloadFormat

DEFAULT_PAGE_SIZE = 1000


class BackingStore(ABC):
    """Flat string-keyed store a StorageArea persists into.

    Keys are already-encoded strings and payloads are already-packed
    text or bytes; a backing store never interprets either.
    """

    @abstractmethod
    async def put(
        self, key: str, payload: Payload, options: Optional[Mapping[str, Any]] = None
    ) -> None:
        """Create or overwrite a payload.  Unknown options are ignored."""
        ...

    @abstractmethod
    async def get(self, key: str, payload_format: PayloadFormat = "text") -> Optional[Payload]:
        """Return the payload as ``str`` or ``bytes``, or ``None`` if not found."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a payload.  No-op if the key does not exist."""
        ...

    @abstractmethod
    async def list(self, options: Optional[ListOptions] = None) -> KeyListPage:
        """Return one page of keys.

        Must honour ``prefix`` identically on every page of a listing and
        must eventually return ``complete=True`` for a finite key set.
        """
        ...


class InMemoryBackingStore(BackingStore):
    """In-memory store using a dict.  Data is lost on process exit.

    Listings are in lexicographic order. The cursor is the last key of the
    previous page, so deleting keys while listing (as ``clear()`` does)
    never skips any.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._data: Dict[str, Payload] = {}
        self._page_size = page_size

    async def put(
        self, key: str, payload: Payload, options: Optional[Mapping[str, Any]] = None
    ) -> None:
        self._data[key] = payload

    async def get(self, key: str, payload_format: PayloadFormat = "text") -> Optional[Payload]:
        payload = self._data.get(key)
        if payload is None:
            return None
        if payload_format == "bytes" and isinstance(payload, str):
            return payload.encode("utf-8")
        if payload_format == "text" and isinstance(payload, bytes):
            return payload.decode("utf-8")
        return payload

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, options: Optional[ListOptions] = None) -> KeyListPage:
        options = options or {}
        prefix = options.get("prefix", "")
        limit = max(1, min(options.get("limit", self._page_size), self._page_size))

        names = sorted(k for k in self._data if k.startswith(prefix))
        cursor = options.get("cursor")
        start = bisect_right(names, cursor) if cursor is not None else 0

        page = names[start : start + limit]
        keys = [ListedKey(name=name) for name in page]
        if start + limit >= len(names):
            return {"keys": keys, "complete": True}
        return {"keys": keys, "complete": False, "cursor": page[-1]}

    def __len__(self) -> int:
        return len(self._data)
