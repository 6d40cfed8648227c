"""
Framework-agnostic entity selection for relation fields.

A `PaginatedSelectionController` backs every "pick parts / services / garages"
dialog: it pages and searches one entity collection and keeps two selection
tiers while the dialog is open.

- committed: the value owned by the parent form field
- pending: the working copy edited while the dialog is open

`pending` is seeded from `committed` once per open, thrown away on cancel and
promoted to `committed` on confirm. Ids keep the order they were picked in.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional
import logging

from .pagination import FetchPage, PaginatedCollection

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[Any]) -> List[str]:
    seen = set()
    out: List[str] = []
    for raw in ids or []:
        entity_id = str(raw)
        if entity_id not in seen:
            seen.add(entity_id)
            out.append(entity_id)
    return out


@dataclass
class SelectionState:
    """Committed and pending entity ids."""
    committed: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)


class PaginatedSelectionController(PaginatedCollection):
    """
    Paged, searchable multi-select (or single-select) over one entity type.

    Events:
    - "state_changed" (controller) after any visible change
    - "selection_confirmed" (ids) when confirm() closes the dialog
    - "selection_cancelled" (ids) when cancel() closes the dialog
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        limit: int = 12,
        max_limit: int = 100,
        debounce_delay: float = 0.3,
        label: str = "items",
        id_getter: Optional[Callable[[Any], str]] = None,
        multiple: bool = True,
        on_confirm: Optional[Callable[[List[str]], None]] = None,
    ):
        """Initialize the selection controller.

        Args:
            fetch_page: Async capability `fetch_page(page, limit, query)`
            limit: Rows per selector page
            max_limit: Upper bound accepted for `limit`
            debounce_delay: Search quiet period in seconds
            label: Plural entity label used in fallback error messages
            id_getter: Extracts the entity id from a row
            multiple: False turns toggle() into a single-choice pick
            on_confirm: Receives the confirmed ids, e.g. to write a form field
        """
        super().__init__(
            fetch_page,
            limit=limit,
            max_limit=max_limit,
            debounce_delay=debounce_delay,
            label=label,
            id_getter=id_getter,
        )
        self.multiple = multiple
        self.on_confirm = on_confirm
        self.selection = SelectionState()
        self.is_open = False

    @property
    def committed(self) -> List[str]:
        return list(self.selection.committed)

    @property
    def pending(self) -> List[str]:
        return list(self.selection.pending)

    @property
    def selected_count(self) -> int:
        return len(self.selection.pending)

    @property
    def total_selected_count(self) -> int:
        return len(self.selection.committed)

    @property
    def all_visible_selected(self) -> bool:
        visible = self.visible_ids
        return bool(visible) and all(entity_id in self.selection.pending for entity_id in visible)

    def is_selected(self, entity_id: Any) -> bool:
        return str(entity_id) in self.selection.pending

    async def open(self, initial_selection: Optional[Iterable[Any]] = None) -> bool:
        """Open the selector seeded with the field's current value.

        Resets search to page 1 of the empty query and fetches it. Opening an
        already open selector changes nothing.

        Returns:
            Whether the first page loaded
        """
        if self.is_open:
            logger.debug(f"{self.label} selector already open")
            return False
        committed = _unique(initial_selection or [])
        self.selection = SelectionState(committed=committed, pending=list(committed))
        self.is_open = True
        self.reset_query()
        return await self._load(1, "")

    def set_search_text(self, text: str) -> None:
        if not self.is_open:
            logger.debug(f"Ignoring search on closed {self.label} selector")
            return
        super().set_search_text(text)

    async def change_page(self, page: int) -> bool:
        if not self.is_open:
            logger.debug(f"Ignoring page change on closed {self.label} selector")
            return False
        return await super().change_page(page)

    async def refresh(self) -> bool:
        if not self.is_open:
            return False
        return await super().refresh()

    def toggle(self, entity_id: Any) -> None:
        """Flip membership of one id in the pending selection."""
        entity_id = str(entity_id)
        pending = self.selection.pending
        if not self.multiple:
            self.selection.pending = [] if pending == [entity_id] else [entity_id]
        elif entity_id in pending:
            self.selection.pending = [i for i in pending if i != entity_id]
        else:
            self.selection.pending = pending + [entity_id]
        self._notify_listeners("state_changed", self)

    def select_all_visible(self) -> None:
        """Add every row on the current page to the pending selection."""
        if not self.multiple:
            return
        self.selection.pending = _unique(self.selection.pending + self.visible_ids)
        self._notify_listeners("state_changed", self)

    def deselect_all_visible(self) -> None:
        """Remove the current page's rows from the pending selection."""
        visible = set(self.visible_ids)
        self.selection.pending = [i for i in self.selection.pending if i not in visible]
        self._notify_listeners("state_changed", self)

    def clear(self) -> None:
        self.selection.pending = []
        self._notify_listeners("state_changed", self)

    def reset_selection(self) -> None:
        """Throw away pending edits without closing."""
        self.selection.pending = list(self.selection.committed)
        self._notify_listeners("state_changed", self)

    def confirm(self) -> List[str]:
        """Commit the pending selection and close.

        Calling it again while closed returns the same committed ids.
        """
        if not self.is_open:
            return self.committed
        self.selection.committed = list(self.selection.pending)
        confirmed = self.committed
        self._close()
        if self.on_confirm is not None:
            try:
                self.on_confirm(list(confirmed))
            except Exception as e:
                logger.error(f"Error writing confirmed {self.label} selection: {e}")
        self._notify_listeners("selection_confirmed", list(confirmed))
        return confirmed

    def cancel(self) -> List[str]:
        """Discard pending edits and close. Returns the untouched committed ids."""
        self.selection.pending = list(self.selection.committed)
        if self.is_open:
            self._close()
            self._notify_listeners("selection_cancelled", self.committed)
        return self.committed

    def _close(self) -> None:
        self.is_open = False
        self._search.cancel()
        # in-flight fetches finish but their results are no longer applied
        self.invalidate()
        self._notify_listeners("state_changed", self)
