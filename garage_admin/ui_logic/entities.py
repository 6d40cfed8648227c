"""
Entity registry: one configuration per manageable record type.

The REST endpoints disagree on response shapes (rows under `data`, `parts`,
`garages`, `packages`, ...; single records under `service`, `garage`, ...).
Each `EntityConfig` records those keys so one generic controller serves all
seven entity types.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..settings import AppSettings
from .list_manager import PaginatedListController
from .pagination import DEFAULT_ITEM_KEYS
from .selection_manager import PaginatedSelectionController


@dataclass(frozen=True)
class EntityConfig:
    """Static description of one entity type."""
    key: str
    label: str
    singular: str
    endpoint: str
    item_keys: Tuple[str, ...] = DEFAULT_ITEM_KEYS
    detail_keys: Tuple[str, ...] = ("data",)
    id_field: str = "_id"

    def get_id(self, item: Any) -> str:
        """Entity id of a row (`id_field`, falling back to `id`)."""
        if isinstance(item, Mapping):
            value = item.get(self.id_field, item.get("id"))
        else:
            value = getattr(item, self.id_field, None) or getattr(item, "id", None)
        if value is None:
            raise KeyError(f"{self.singular} row has no '{self.id_field}'")
        return str(value)

    def unwrap_detail(self, raw: Any) -> Any:
        """Pull a single record out of a detail/create/update response."""
        if isinstance(raw, Mapping):
            for key in self.detail_keys:
                if isinstance(raw.get(key), Mapping):
                    return raw[key]
        return raw


ENTITIES: Dict[str, EntityConfig] = {
    "parts": EntityConfig(
        key="parts", label="parts", singular="part", endpoint="parts",
        item_keys=("data", "parts"), detail_keys=("part", "data"),
    ),
    "vehicles": EntityConfig(
        key="vehicles", label="vehicles", singular="vehicle", endpoint="vehicles",
        item_keys=("vehicles", "data"), detail_keys=("vehicle", "data"),
    ),
    "garages": EntityConfig(
        key="garages", label="garages", singular="garage", endpoint="garages",
        item_keys=("garages", "data"), detail_keys=("garage", "data"),
    ),
    "services": EntityConfig(
        key="services", label="services", singular="service", endpoint="services",
        item_keys=("services", "data"), detail_keys=("service", "data"),
    ),
    "service_packages": EntityConfig(
        key="service_packages", label="service packages", singular="service package",
        endpoint="service-packages",
        item_keys=("packages", "servicePackages", "data"), detail_keys=("servicePackage", "data"),
    ),
    "manufacturers": EntityConfig(
        key="manufacturers", label="manufacturers", singular="manufacturer", endpoint="manufacturers",
        item_keys=("data", "manufacturers"), detail_keys=("manufacturer", "data"),
    ),
    "fuel_types": EntityConfig(
        key="fuel_types", label="fuel types", singular="fuel type", endpoint="fuel-types",
        item_keys=("data", "fuelTypes"), detail_keys=("fuelType", "data"),
    ),
}


def get_entity(entity_key: str) -> EntityConfig:
    try:
        return ENTITIES[entity_key]
    except KeyError:
        raise KeyError(f"Unknown entity '{entity_key}'. Known: {', '.join(sorted(ENTITIES))}")


def list_entities() -> List[str]:
    return list(ENTITIES)


def build_selection_controller(
    entity_key: str,
    api: Any,
    settings: Optional[AppSettings] = None,
    *,
    multiple: bool = True,
    on_confirm: Optional[Callable[[List[str]], None]] = None,
) -> PaginatedSelectionController:
    """Selector for one entity backed by an API client's `fetch_page`.

    Args:
        entity_key: Key in ENTITIES
        api: Object exposing `fetch_page(page, limit, query)`
        settings: Pagination/debounce settings, defaults when None
        multiple: False for single-choice pickers
        on_confirm: Receives the confirmed ids
    """
    config = get_entity(entity_key)
    pagination = (settings or AppSettings()).pagination
    return PaginatedSelectionController(
        api.fetch_page,
        limit=pagination.selector_limit,
        max_limit=pagination.max_limit,
        debounce_delay=pagination.search_debounce_seconds,
        label=config.label,
        id_getter=config.get_id,
        multiple=multiple,
        on_confirm=on_confirm,
    )


def build_list_controller(
    entity_key: str,
    api: Any,
    settings: Optional[AppSettings] = None,
) -> PaginatedListController:
    """List screen controller for one entity backed by an API client."""
    config = get_entity(entity_key)
    pagination = (settings or AppSettings()).pagination
    return PaginatedListController(
        api.fetch_page,
        delete_item=getattr(api, "delete", None),
        limit=pagination.default_limit,
        max_limit=pagination.max_limit,
        debounce_delay=pagination.search_debounce_seconds,
        label=config.label,
        id_getter=config.get_id,
    )
