"""
Framework-agnostic controller for the entity list screens.

Each list screen (parts, vehicles, garages, ...) pages through one collection
with a debounced search box, lets the user change the page size and deletes
rows in place. Failures are returned as messages, never raised.
"""

from typing import Any, Awaitable, Callable, Optional, Tuple
import logging

from .pagination import FetchPage, PaginatedCollection

logger = logging.getLogger(__name__)

DeleteItem = Callable[[str], Awaitable[Any]]


class PaginatedListController(PaginatedCollection):
    """
    List screen state: current page, search, page size and deletion.

    Events:
    - "state_changed" (controller) after any visible change
    - "item_deleted" (entity_id) after a successful delete
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        delete_item: Optional[DeleteItem] = None,
        limit: int = 10,
        max_limit: int = 100,
        debounce_delay: float = 0.3,
        label: str = "items",
        id_getter: Optional[Callable[[Any], str]] = None,
    ):
        """Initialize the list controller.

        Args:
            fetch_page: Async capability `fetch_page(page, limit, query)`
            delete_item: Async capability deleting one entity by id
            limit: Rows per page
            max_limit: Upper bound accepted by change_limit()
            debounce_delay: Search quiet period in seconds
            label: Plural entity label used in messages
            id_getter: Extracts the entity id from a row
        """
        super().__init__(
            fetch_page,
            limit=limit,
            max_limit=max_limit,
            debounce_delay=debounce_delay,
            label=label,
            id_getter=id_getter,
        )
        self._delete_item = delete_item
        self.deleting_id: Optional[str] = None

    async def load(self) -> bool:
        """Initial fetch: page 1 of the committed query."""
        self.query.page = 1
        return await self._load(1, self.query.committed_text)

    async def change_limit(self, limit: int) -> bool:
        """Switch page size and go back to page 1."""
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1 or limit > self.max_limit:
            logger.debug(f"Ignoring invalid page size {limit!r}")
            return False
        self.limit = limit
        self.query.page = 1
        return await self._load(1, self.query.committed_text)

    async def delete_item(self, entity_id: Any) -> Tuple[bool, Optional[str]]:
        """Delete one row and refresh the page it was on.

        When the deleted row was the only one on a trailing page the previous
        page is shown instead.

        Returns:
            Tuple of (success, error_message)
        """
        if self._delete_item is None:
            return False, f"Deleting {self.label} is not supported"

        entity_id = str(entity_id)
        self.deleting_id = entity_id
        self._notify_listeners("state_changed", self)
        try:
            await self._delete_item(entity_id)
        except Exception as e:
            error_msg = str(e) or f"Failed to delete {self.label}"
            logger.error(f"Error deleting {self.label} {entity_id}: {error_msg}")
            return False, error_msg
        finally:
            self.deleting_id = None
            self._notify_listeners("state_changed", self)

        logger.info(f"Deleted {self.label} {entity_id}")
        self._notify_listeners("item_deleted", entity_id)

        target = self.query.page
        if target > 1 and len(self.items) == 1:
            target -= 1
        self.query.page = target
        await self._load(target, self.query.committed_text)
        return True, None
