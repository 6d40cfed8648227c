"""
Bearer-token session shared by every API client.

Clients ask the session for the token instead of reading ambient storage, and
report a 401 through `expire()`, which clears the token and tells listeners
(typically the UI, which sends the user back to the login screen).
"""

from typing import Callable, Optional
import logging

from ..ui_logic.observable import Observable

logger = logging.getLogger(__name__)


class AuthSession(Observable):
    """In-memory token holder.

    Events:
    - "token_changed" (token or None)
    - "expired" () after the server rejected the token
    """

    def __init__(self, token: Optional[str] = None):
        super().__init__()
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        if not token:
            raise ValueError("Token must be a non-empty string")
        self._token = token
        self._notify_listeners("token_changed", token)

    def clear_token(self) -> None:
        if self._token is None:
            return
        self._token = None
        self._notify_listeners("token_changed", None)

    def expire(self) -> None:
        """Drop the token after a 401 and notify expiry listeners."""
        logger.warning("Session token rejected by the server; clearing it")
        self.clear_token()
        self._notify_listeners("expired")

    def on_expired(self, callback: Callable[[], None]) -> None:
        self.add_listener("expired", callback)
