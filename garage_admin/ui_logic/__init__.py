"""
Framework-agnostic business logic for the garage admin screens.

This package contains the state and rules behind the admin UI, kept
independent of any UI framework so that any front-end can bind to it.

Core principles:
- No UI framework imports or dependencies
- Async fetches with stale-response suppression
- Errors stored as displayable state, never raised to the view
- Listener-based change notification
"""

from .pagination import Page, PaginatedCollection, adapt_page_response
from .selection_manager import PaginatedSelectionController
from .list_manager import PaginatedListController
from .validation_manager import FieldRules, UploadedFile, ValidationManager
from .entities import ENTITIES, build_list_controller, build_selection_controller, get_entity
from .entity_schemas import build_submit_payload, get_schema
from .table_manager import TableManager
from .dashboard_manager import DashboardStatsController
from .debounce import debounce

__all__ = [
    "Page",
    "PaginatedCollection",
    "adapt_page_response",
    "PaginatedSelectionController",
    "PaginatedListController",
    "FieldRules",
    "UploadedFile",
    "ValidationManager",
    "ENTITIES",
    "build_list_controller",
    "build_selection_controller",
    "get_entity",
    "build_submit_payload",
    "get_schema",
    "TableManager",
    "DashboardStatsController",
    "debounce",
]
