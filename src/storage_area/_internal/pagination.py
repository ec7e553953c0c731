"""Cursor pagination over a backing store's list primitive.

This module is not part of the public API and should only be used internally.
"""

from typing import TYPE_CHECKING, AsyncIterator, Optional

from storage_area.types import ListOptions, StorageAreaError

if TYPE_CHECKING:
    from storage_area.backing_store import BackingStore


async def paginate_keys(
    store: "BackingStore", options: Optional[ListOptions] = None
) -> AsyncIterator[str]:
    """Yield every key name a listing produces, page after page.

    The first page is requested with the caller's options minus any cursor;
    every following page re-applies them together with the cursor of the
    previous page. Stops after the page the store marks complete.

    Keys are yielded in page order and are not de-duplicated; consistency
    across pages is the backing store's responsibility. The iterator cannot
    be restarted: call again to list from scratch.

    Args:
        store: Backing store to list
        options: Filter options (prefix, limit) re-applied to every page

    Raises:
        StorageAreaError: If an incomplete page carries no cursor
    """
    request: ListOptions = dict(options or {})  # type: ignore[assignment]
    request.pop("cursor", None)

    while True:
        page = await store.list(request)
        for listed in page["keys"]:
            yield listed["name"]

        if page["complete"]:
            return

        cursor = page.get("cursor")
        if not cursor:
            raise StorageAreaError("Backing store reported more keys but returned no cursor")
        request = {**(options or {}), "cursor": cursor}  # type: ignore[typeddict-item]
