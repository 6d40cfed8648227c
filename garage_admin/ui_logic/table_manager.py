"""
Framework-agnostic table rendering for the entity list screens.

`TableManager.build_table` turns the rows of the current page into a pandas
DataFrame with display labels as columns and display strings as cells, so any
front-end can show it as-is. The entity id stays available as the index.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import math

import pandas as pd

from .entities import get_entity
from .field_paths import get_path

logger = logging.getLogger(__name__)

MISSING_CELL = "-"


@dataclass(frozen=True)
class ColumnSpec:
    """One list-screen column: value path, header and display format."""
    key: str
    label: str
    format: Optional[str] = None
    sortable: bool = True


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_currency(value: Any) -> str:
    number = _number(value)
    if number is None:
        return MISSING_CELL
    sign = "-" if number < 0 else ""
    return f"{sign}${abs(number):,.2f}"


def format_time(value: Any) -> str:
    """Minutes as `45 min` / `1h 30m`."""
    number = _number(value)
    if number is None:
        return MISSING_CELL
    minutes = int(round(number))
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}m" if rest else f"{hours}h"


def format_percentage(value: Any) -> str:
    number = _number(value)
    if number is None:
        return MISSING_CELL
    if number.is_integer():
        return f"{int(number)}%"
    return f"{number:g}%"


def format_days(value: Any) -> str:
    number = _number(value)
    if number is None:
        return MISSING_CELL
    days = int(number) if number.is_integer() else number
    return f"{days} day" if days == 1 else f"{days} days"


def format_count(value: Any) -> str:
    if value is None:
        return "0"
    if isinstance(value, (list, tuple, set, dict)):
        return str(len(value))
    number = _number(value)
    return str(int(number)) if number is not None else MISSING_CELL


FORMATTERS: Dict[str, Callable[[Any], str]] = {
    "currency": format_currency,
    "time": format_time,
    "percentage": format_percentage,
    "days": format_days,
    "count": format_count,
}


TABLE_COLUMNS: Dict[str, Tuple[ColumnSpec, ...]] = {
    "parts": (
        ColumnSpec("name", "Name"),
        ColumnSpec("category", "Category"),
        ColumnSpec("price", "Price", "currency"),
    ),
    "services": (
        ColumnSpec("name", "Service Name"),
        ColumnSpec("price", "Price", "currency"),
        ColumnSpec("estimated_time", "Duration", "time"),
        ColumnSpec("discount", "Discount", "percentage"),
    ),
    "service_packages": (
        ColumnSpec("name", "Package Name"),
        ColumnSpec("price", "Price", "currency"),
        ColumnSpec("duration", "Duration", "days"),
        ColumnSpec("services", "Services", "count", sortable=False),
    ),
    "vehicles": (
        ColumnSpec("model", "Model"),
        ColumnSpec("year", "Year"),
        ColumnSpec("license_plate", "License Plate"),
        ColumnSpec("mileage", "Mileage"),
    ),
    "garages": (
        ColumnSpec("name", "Name"),
        ColumnSpec("address", "Address"),
        ColumnSpec("contact.phone", "Phone"),
        ColumnSpec("services", "Services", "count", sortable=False),
    ),
    "manufacturers": (
        ColumnSpec("name", "Name"),
        ColumnSpec("country", "Country"),
        ColumnSpec("founded", "Founded"),
    ),
    "fuel_types": (
        ColumnSpec("title", "Title"),
        ColumnSpec("value", "Value"),
    ),
}

DEFAULT_COLUMNS: Tuple[ColumnSpec, ...] = (ColumnSpec("name", "Name"),)


def format_cell(column: ColumnSpec, value: Any) -> str:
    if column.format is not None:
        return FORMATTERS[column.format](value)
    if value is None or value == "":
        return MISSING_CELL
    if isinstance(value, Mapping):
        # populated references come back as objects
        return str(value.get("name") or value.get("title") or value.get("_id") or MISSING_CELL)
    return str(value)


class TableManager:
    """Builds display tables for the list screens."""

    def __init__(self, columns: Optional[Mapping[str, Sequence[ColumnSpec]]] = None):
        self.columns: Dict[str, Tuple[ColumnSpec, ...]] = {
            key: tuple(specs) for key, specs in (columns or TABLE_COLUMNS).items()
        }

    def get_columns(self, entity_key: str) -> Tuple[ColumnSpec, ...]:
        return self.columns.get(entity_key, DEFAULT_COLUMNS)

    def sortable_columns(self, entity_key: str) -> List[str]:
        return [c.label for c in self.get_columns(entity_key) if c.sortable]

    def build_table(self, entity_key: str, items: Sequence[Any]) -> pd.DataFrame:
        """Format one page of rows for display.

        Args:
            entity_key: Key in the entity registry
            items: Rows as returned by the list endpoint

        Returns:
            DataFrame indexed by entity id with one column per display column
        """
        entity = get_entity(entity_key)
        columns = self.get_columns(entity_key)
        labels = [c.label for c in columns]

        rows: List[Dict[str, str]] = []
        index: List[str] = []
        for item in items:
            if not isinstance(item, Mapping):
                logger.warning(f"Skipping non-mapping {entity.singular} row: {item!r}")
                continue
            try:
                index.append(entity.get_id(item))
            except KeyError as e:
                logger.warning(f"Skipping {entity.singular} row without id: {e}")
                continue
            rows.append({c.label: format_cell(c, get_path(item, c.key)) for c in columns})

        df = pd.DataFrame(rows, columns=labels, index=pd.Index(index, name="id"))
        return df
