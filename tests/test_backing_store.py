"""Tests for the in-memory backing store."""

import pytest

from storage_area._internal.pagination import paginate_keys
from storage_area.backing_store import InMemoryBackingStore


class TestInMemoryBackingStore:
    """Tests for InMemoryBackingStore."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self) -> None:
        """Basic payload lifecycle."""
        store = InMemoryBackingStore()
        await store.put("k", "payload")
        assert await store.get("k") == "payload"
        await store.delete("k")
        assert await store.get("k") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self) -> None:
        """Deleting an absent key does nothing."""
        store = InMemoryBackingStore()
        await store.delete("nope")

    @pytest.mark.asyncio
    async def test_payload_format_conversion(self) -> None:
        """Payloads are returned in the requested format."""
        store = InMemoryBackingStore()
        await store.put("text", "héllo")
        await store.put("raw", b"\x01\x02")
        assert await store.get("text", "bytes") == "héllo".encode("utf-8")
        assert await store.get("raw", "bytes") == b"\x01\x02"
        assert await store.get("text", "text") == "héllo"

    @pytest.mark.asyncio
    async def test_options_ignored(self) -> None:
        """Expiration options are accepted."""
        store = InMemoryBackingStore()
        await store.put("k", "v", {"expiration_ttl": 60})
        assert await store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_list_sorted_with_prefix(self) -> None:
        """Only keys under the prefix, in order."""
        store = InMemoryBackingStore()
        for key in ("b/2", "a/1", "b/1", "c"):
            await store.put(key, "x")
        result = await store.list({"prefix": "b/"})
        assert result["complete"] is True
        assert [k["name"] for k in result["keys"]] == ["b/1", "b/2"]

    @pytest.mark.asyncio
    async def test_list_pages(self) -> None:
        """Page size bounds each page and a cursor continues the listing."""
        store = InMemoryBackingStore(page_size=2)
        for i in range(5):
            await store.put(f"k{i}", "x")

        first = await store.list()
        assert [k["name"] for k in first["keys"]] == ["k0", "k1"]
        assert first["complete"] is False
        second = await store.list({"cursor": first["cursor"]})
        assert [k["name"] for k in second["keys"]] == ["k2", "k3"]

    @pytest.mark.asyncio
    async def test_limit_is_capped_by_page_size(self) -> None:
        """A larger limit is clamped, a smaller one honoured."""
        store = InMemoryBackingStore(page_size=2)
        for i in range(4):
            await store.put(f"k{i}", "x")
        assert len((await store.list({"limit": 100}))["keys"]) == 2
        assert len((await store.list({"limit": 1}))["keys"]) == 1

    @pytest.mark.asyncio
    async def test_exact_page_boundary_is_complete(self) -> None:
        """No trailing empty page when the keys fill the last page exactly."""
        store = InMemoryBackingStore(page_size=2)
        for i in range(2):
            await store.put(f"k{i}", "x")
        result = await store.list()
        assert result["complete"] is True

    @pytest.mark.asyncio
    async def test_delete_while_listing_skips_nothing(self) -> None:
        """Deleting listed keys between pages still visits every key."""
        store = InMemoryBackingStore(page_size=2)
        for i in range(7):
            await store.put(f"k{i}", "x")

        seen = []
        async for name in paginate_keys(store):
            seen.append(name)
            await store.delete(name)

        assert seen == [f"k{i}" for i in range(7)]
        assert len(store) == 0
