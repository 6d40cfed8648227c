"""
Framework-agnostic state for the dashboard statistics panel.

The dashboard shows a record count per entity plus an optional insights block.
Both come from a `fetch_statistics()` capability that fetches the basic and
detailed statistics together and reports each half's failure separately, so
one failing endpoint does not blank the other.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
import logging

from .observable import Observable

logger = logging.getLogger(__name__)

STATISTICS_ERROR = "Failed to fetch statistics"

# entity key -> count field of the basic statistics payload
STAT_COUNT_KEYS: Dict[str, str] = {
    "parts": "totalParts",
    "vehicles": "totalVehicles",
    "garages": "totalGarages",
    "services": "totalServices",
    "service_packages": "totalServicePackages",
    "manufacturers": "totalManufacturers",
    "fuel_types": "totalFuelTypes",
}


@dataclass
class StatisticsBundle:
    """Basic and detailed statistics, each with its own failure."""
    basic: Optional[Mapping[str, Any]] = None
    detailed: Optional[Mapping[str, Any]] = None
    basic_error: Optional[BaseException] = None
    detailed_error: Optional[BaseException] = None


@dataclass
class StatEntry:
    count: int = 0
    loading: bool = True

    def to_dict(self) -> Dict:
        return {'count': self.count, 'loading': self.loading}


@dataclass
class InsightsState:
    data: Optional[Mapping[str, Any]] = None
    loading: bool = True


FetchStatistics = Callable[[], Awaitable[StatisticsBundle]]


def _count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def build_stat_entries(basic: Optional[Mapping[str, Any]]) -> Dict[str, StatEntry]:
    """Per-entity counts from a basic statistics payload; zeros when missing."""
    basic = basic or {}
    return {
        entity: StatEntry(count=_count(basic.get(source)), loading=False)
        for entity, source in STAT_COUNT_KEYS.items()
    }


def _message(error: Optional[BaseException]) -> Optional[str]:
    if error is None:
        return None
    return str(error) or STATISTICS_ERROR


class DashboardStatsController(Observable):
    """
    Dashboard statistics with partial-failure reporting.

    Every entity starts as `{count: 0, loading: True}` until the first load.
    A failed half leaves its part zeroed and its message in `error`; the basic
    error wins when both fail.

    Events:
    - "state_changed" (controller) after any visible change
    """

    def __init__(self, fetch_statistics: FetchStatistics):
        super().__init__()
        self.fetch_statistics = fetch_statistics
        self.stats: Dict[str, StatEntry] = {key: StatEntry() for key in STAT_COUNT_KEYS}
        self.insights = InsightsState()
        self.error: Optional[str] = None
        self.loading = True
        self._request_seq = 0

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def has_insights(self) -> bool:
        return bool(self.insights.data)

    @property
    def is_loading(self) -> bool:
        return self.loading

    def get_count(self, entity_key: str) -> int:
        return self.stats[entity_key].count

    async def load(self) -> bool:
        """Fetch both statistics halves and apply them.

        Returns:
            True when neither half failed
        """
        self._request_seq += 1
        seq = self._request_seq
        self.loading = True
        self.error = None
        self._notify_listeners("state_changed", self)

        try:
            bundle = await self.fetch_statistics()
        except Exception as e:
            if seq != self._request_seq:
                return False
            logger.error(f"Error fetching dashboard statistics: {e}")
            self.stats = build_stat_entries(None)
            self.insights = InsightsState(data=None, loading=False)
            self.error = str(e) or STATISTICS_ERROR
            self.loading = False
            self._notify_listeners("state_changed", self)
            return False

        if seq != self._request_seq:
            logger.debug("Dropping stale dashboard statistics")
            return False

        detailed = bundle.detailed or {}
        self.stats = build_stat_entries(bundle.basic)
        self.insights = InsightsState(data=detailed.get("insights") or None, loading=False)
        self.error = _message(bundle.basic_error) or _message(bundle.detailed_error)
        if self.error:
            logger.warning(f"Dashboard statistics partially failed: {self.error}")
        self.loading = False
        self._notify_listeners("state_changed", self)
        return self.error is None

    async def refresh_stats(self) -> bool:
        return await self.load()

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'stats': {key: entry.to_dict() for key, entry in self.stats.items()},
            'insights': {'data': self.insights.data, 'loading': self.insights.loading},
            'error': self.error,
            'loading': self.loading,
            'has_error': self.has_error,
            'has_insights': self.has_insights,
        }
