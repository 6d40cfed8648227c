"""
Listener registry shared by the framework-agnostic controllers.

Controllers publish named events; any UI layer subscribes with plain callables.
A failing callback is logged and never interrupts the controller.
"""

from typing import Callable, Dict, List
import logging

logger = logging.getLogger(__name__)


class Observable:
    """Mixin providing add/remove/notify for named events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def add_listener(self, event: str, callback: Callable) -> None:
        """Add a listener for a controller event."""
        if event not in self._listeners:
            self._listeners[event] = []
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        """Remove a listener for a controller event."""
        if event in self._listeners:
            try:
                self._listeners[event].remove(callback)
            except ValueError:
                pass

    def _notify_listeners(self, event: str, *args, **kwargs) -> None:
        """Notify all listeners for a specific event."""
        if event in self._listeners:
            for callback in list(self._listeners[event]):
                try:
                    callback(*args, **kwargs)
                except Exception as e:
                    logger.error(f"Error in {event} listener callback: {e}")
