"""
Framework-agnostic pagination and search state for entity collections.

This module provides the fetch lifecycle shared by the list screens and the
entity selectors:
- a `Page` value normalized from whatever shape the REST layer returned
- a `QueryState` holding raw search text, committed search text and page
- `PaginatedCollection`, which debounces search input, issues
  `fetch_page(page, limit, query)` and applies only the newest response

Every fetch is tagged with a sequence number. A response (or failure) that
arrives after a newer request was issued is dropped, so a slow response for an
old query can never overwrite the results of the current one.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Set
import asyncio
import logging
import math

from .debounce import debounce
from .observable import Observable

logger = logging.getLogger(__name__)

DEFAULT_ITEM_KEYS = ("data", "items")

FetchPage = Callable[[int, int, str], Awaitable[Any]]


@dataclass(frozen=True)
class Page:
    """One page of results.

    - page is 1-based and never exceeds pages
    - items never holds more than limit entries
    """
    items: List[Any] = field(default_factory=list)
    page: int = 1
    pages: int = 1
    total: int = 0
    limit: int = 10

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'items': list(self.items),
            'page': self.page,
            'pages': self.pages,
            'total': self.total,
            'limit': self.limit,
        }


@dataclass
class QueryState:
    """Search and cursor state of a collection."""
    raw_text: str = ""
    committed_text: str = ""
    page: int = 1


def _as_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number


def _page_count(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit))


def adapt_page_response(
    raw: Any,
    limit: int,
    requested_page: int = 1,
    item_keys: Sequence[str] = DEFAULT_ITEM_KEYS,
) -> Page:
    """Normalize a REST list response into a `Page`.

    The endpoints disagree on where the rows live (`data`, `parts`,
    `garages`, ...) and on whether the page count is `pages` or `totalPages`,
    so the caller passes the candidate item keys in priority order.

    Args:
        raw: Decoded response body (mapping, `Page`, or bare list)
        limit: Page size that was requested
        requested_page: Page number that was requested
        item_keys: Keys to look up the row list under, first match wins

    Returns:
        A clamped `Page`
    """
    if isinstance(raw, Page):
        return raw

    if isinstance(raw, (list, tuple)):
        items = list(raw)
        return Page(items=items[:limit], page=1, pages=_page_count(len(items), limit), total=len(items), limit=limit)

    if not isinstance(raw, Mapping):
        raise TypeError(f"Unexpected page response type: {type(raw).__name__}")

    items: List[Any] = []
    for key in item_keys:
        candidate = raw.get(key)
        if isinstance(candidate, (list, tuple)):
            items = list(candidate)
            break

    row_count = len(items)
    if row_count > limit:
        logger.warning(f"Response held {row_count} rows for a page of {limit}; truncating")
        items = items[:limit]

    total = max(0, _as_int(raw.get("total"), row_count))
    page_count = raw.get("totalPages") or raw.get("pages")
    if page_count is None:
        pages = _page_count(total, limit)
    else:
        pages = max(1, _as_int(page_count, 1))
    page = max(1, min(_as_int(raw.get("page"), requested_page), pages))
    return Page(items=items, page=page, pages=pages, total=total, limit=limit)


def default_id_getter(item: Any) -> str:
    """Return the entity id of a row (`_id`, falling back to `id`)."""
    if isinstance(item, Mapping):
        value = item.get("_id", item.get("id"))
    else:
        value = getattr(item, "_id", None) or getattr(item, "id", None)
    if value is None:
        raise KeyError("Item has no '_id' or 'id'")
    return str(value)


class PaginatedCollection(Observable):
    """
    Fetch lifecycle for one paginated, searchable entity collection.

    Owns the query state, the current page of results and the request
    sequence. Public operations never raise; failures land in `error`.

    Events:
    - "state_changed" (collection) after any visible change
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        limit: int = 10,
        max_limit: int = 100,
        debounce_delay: float = 0.3,
        label: str = "items",
        id_getter: Optional[Callable[[Any], str]] = None,
    ):
        """Initialize the collection.

        Args:
            fetch_page: Async capability `fetch_page(page, limit, query)`
            limit: Rows per page
            max_limit: Upper bound accepted for `limit`
            debounce_delay: Search quiet period in seconds
            label: Plural entity label used in fallback error messages
            id_getter: Extracts the entity id from a row
        """
        super().__init__()
        if limit <= 0 or limit > max_limit:
            raise ValueError(f"limit must be between 1 and {max_limit}")
        self.fetch_page = fetch_page
        self.limit = limit
        self.max_limit = max_limit
        self.label = label
        self.id_getter = id_getter or default_id_getter

        self.query = QueryState()
        self.items: List[Any] = []
        self.page = 1
        self.pages = 1
        self.total = 0
        self.loading = False
        self.error: Optional[str] = None
        self.has_loaded = False

        self._request_seq = 0
        self._tasks: Set[asyncio.Task] = set()
        self._search = debounce(self._commit_search, debounce_delay)

    @property
    def pagination(self) -> Dict[str, int]:
        """Pagination info of the last successful fetch."""
        return {
            'page': self.page,
            'pages': self.pages,
            'total': self.total,
            'limit': self.limit,
        }

    @property
    def visible_ids(self) -> List[str]:
        """Entity ids of the rows on the current page."""
        return [self.id_getter(item) for item in self.items]

    @property
    def search_pending(self) -> bool:
        return self._search.pending

    def set_search_text(self, text: str) -> None:
        """Echo search input now and commit it after the debounce delay."""
        text = "" if text is None else str(text)
        self.query.raw_text = text
        self._search(text)
        self._notify_listeners("state_changed", self)

    def flush_search(self) -> bool:
        """Commit pending search text immediately (e.g. on Enter)."""
        return self._search.flush()

    async def change_page(self, page: int) -> bool:
        """Fetch another page of the committed query.

        Pages outside 1..pages of the last successful fetch are ignored.
        """
        if not isinstance(page, int) or isinstance(page, bool) or page < 1 or page > self.pages:
            logger.debug(f"Ignoring out-of-range page {page!r} (pages={self.pages})")
            return False
        self.query.page = page
        return await self._load(page, self.query.committed_text)

    async def refresh(self) -> bool:
        """Re-fetch the current page and committed query."""
        return await self._load(self.query.page, self.query.committed_text)

    async def wait_until_idle(self) -> None:
        """Wait for fetches started by debounced search to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reset_query(self) -> None:
        """Drop any scheduled search and return to page 1 of the empty query."""
        self._search.cancel()
        self.query = QueryState()

    def invalidate(self) -> None:
        """Make every in-flight response stale without issuing a new one."""
        self._request_seq += 1
        self.loading = False

    def _commit_search(self, text: str) -> None:
        unchanged = text == self.query.committed_text
        if unchanged and self.error is None and (self.has_loaded or self.loading):
            logger.debug(f"Search text for {self.label} unchanged, skipping fetch")
            return
        # re-submitting the same text after a failed load is a retry
        self.query.committed_text = text
        self.query.page = 1
        self._spawn(self._load(1, text))

    def _spawn(self, coro: Awaitable[bool]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load(self, page: int, query: str) -> bool:
        self._request_seq += 1
        seq = self._request_seq
        self.loading = True
        self.error = None
        self._notify_listeners("state_changed", self)

        try:
            raw = await self.fetch_page(page, self.limit, query)
            result = adapt_page_response(raw, limit=self.limit, requested_page=page)
        except Exception as e:
            if seq != self._request_seq:
                logger.debug(f"Dropping stale failure for {self.label} page {page} query {query!r}")
                return False
            self.error = str(e) or f"Failed to load {self.label}"
            self.loading = False
            logger.error(f"Error fetching {self.label} (page {page}, query {query!r}): {self.error}")
            self._notify_listeners("state_changed", self)
            return False

        if seq != self._request_seq:
            logger.debug(f"Dropping stale response for {self.label} page {page} query {query!r}")
            return False

        self.items = list(result.items)
        self.page = result.page
        self.query.page = result.page
        self.pages = result.pages
        self.total = result.total
        self.loading = False
        self.has_loaded = True
        self._notify_listeners("state_changed", self)
        return True
