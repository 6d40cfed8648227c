"""
REST clients for the admin API.

Thin async wrappers over `httpx.AsyncClient`: attach the bearer token from the
injected `AuthSession`, turn HTTP and transport failures into `ApiError` with
a message the UI can show, and adapt list responses into `Page` objects for
the controllers.
"""

from typing import Any, Dict, Mapping, Optional
import asyncio
import json
import logging

import httpx

from ..ui_logic.dashboard_manager import STATISTICS_ERROR, StatisticsBundle
from ..ui_logic.entities import EntityConfig, get_entity
from ..ui_logic.pagination import Page, adapt_page_response
from .auth_session import AuthSession

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please check your connection and try again."


class ApiError(Exception):
    """A failed API call with a user-facing message."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, Mapping) and body.get("message"):
        return str(body["message"])
    return fallback


def _form_fields(data: Mapping[str, Any]) -> Dict[str, str]:
    """Flatten a payload for multipart upload; nested values travel as JSON."""
    fields: Dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            fields[key] = json.dumps(value)
        else:
            fields[key] = str(value)
    return fields


class _BaseClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[AuthSession] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or AuthSession()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.session.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            return await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(NETWORK_ERROR)

    @staticmethod
    def _decode(response: httpx.Response, fallback: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ApiError(f"{fallback}: invalid response from server", response.status_code)

    async def _call(self, method: str, url: str, fallback: str, **kwargs) -> Any:
        response = await self._send(method, url, **kwargs)
        if response.status_code == 401:
            self.session.expire()
        if response.is_error:
            message = _error_message(response, fallback)
            logger.error(f"{method} {url} -> {response.status_code}: {message}")
            raise ApiError(message, response.status_code)
        return self._decode(response, fallback)


class EntityApiClient(_BaseClient):
    """CRUD + paging for one entity endpoint (e.g. `/parts`)."""

    def __init__(
        self,
        entity: Any,
        base_url: str,
        session: Optional[AuthSession] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            entity: `EntityConfig` or its key in the registry
            base_url: API root, e.g. http://localhost:5000/api
            session: Token holder; a 401 expires it
            client: Shared httpx client (closed by its owner)
            timeout: Request timeout in seconds for an owned client
        """
        super().__init__(base_url, session=session, client=client, timeout=timeout)
        self.entity: EntityConfig = entity if isinstance(entity, EntityConfig) else get_entity(entity)

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/{self.entity.endpoint}"

    def _item_url(self, entity_id: Any) -> str:
        return f"{self.collection_url}/{entity_id}"

    async def list_page(self, page: int = 1, limit: int = 10, search: str = "") -> Any:
        """Raw list response for one page."""
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if search and search.strip():
            params["search"] = search.strip()
        return await self._call(
            "GET", self.collection_url, f"Failed to fetch {self.entity.label}", params=params
        )

    async def fetch_page(self, page: int, limit: int, query: str) -> Page:
        """`fetch_page` capability for the pagination controllers."""
        raw = await self.list_page(page, limit, query)
        return adapt_page_response(raw, limit=limit, requested_page=page, item_keys=self.entity.item_keys)

    async def get(self, entity_id: Any) -> Any:
        raw = await self._call("GET", self._item_url(entity_id), f"Failed to fetch {self.entity.singular}")
        return self.entity.unwrap_detail(raw)

    async def create(self, data: Mapping[str, Any], files: Optional[Mapping[str, Any]] = None) -> Any:
        """Create a record; with `files` the payload goes out as multipart."""
        fallback = f"Failed to create {self.entity.singular}"
        if files:
            raw = await self._call("POST", self.collection_url, fallback, data=_form_fields(data), files=files)
        else:
            raw = await self._call("POST", self.collection_url, fallback, json=dict(data))
        return self.entity.unwrap_detail(raw)

    async def update(self, entity_id: Any, data: Mapping[str, Any], files: Optional[Mapping[str, Any]] = None) -> Any:
        fallback = f"Failed to update {self.entity.singular}"
        url = self._item_url(entity_id)
        if files:
            raw = await self._call("PUT", url, fallback, data=_form_fields(data), files=files)
        else:
            raw = await self._call("PUT", url, fallback, json=dict(data))
        return self.entity.unwrap_detail(raw)

    async def delete(self, entity_id: Any) -> Any:
        return await self._call("DELETE", self._item_url(entity_id), f"Failed to delete {self.entity.singular}")


class AuthApiClient(_BaseClient):
    """Admin login/logout."""

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and store the returned token in the session.

        Returns:
            The response body ({"user": {...}, "token": "..."})
        """
        url = f"{self.base_url}/auth/admin/login"
        response = await self._send("POST", url, json={"email": email, "password": password})
        if response.is_error:
            raise ApiError(_error_message(response, "Login failed"), response.status_code)
        body = self._decode(response, "Login failed")
        if not isinstance(body, Mapping) or not body.get("token"):
            raise ApiError("Login failed: no token in response", response.status_code)
        self.session.set_token(str(body["token"]))
        logger.info("Admin login succeeded")
        return dict(body)

    def logout(self) -> None:
        self.session.clear_token()


class StatisticsApiClient(_BaseClient):
    """Dashboard statistics (`/statistics` and `/statistics/detailed`)."""

    async def _get_statistics(self, path: str) -> Mapping[str, Any]:
        body = await self._call("GET", f"{self.base_url}/statistics{path}", STATISTICS_ERROR)
        if not isinstance(body, Mapping) or not body.get("success"):
            message = body.get("message") if isinstance(body, Mapping) else None
            raise ApiError(message or STATISTICS_ERROR)
        return body.get("data") or {}

    async def basic(self) -> Mapping[str, Any]:
        return await self._get_statistics("")

    async def detailed(self) -> Mapping[str, Any]:
        return await self._get_statistics("/detailed")

    async def statistics(self) -> StatisticsBundle:
        """Fetch basic and detailed statistics concurrently.

        A failure of one half is recorded in the bundle instead of raised, so
        the dashboard can still show the other half.
        """
        basic, detailed = await asyncio.gather(self.basic(), self.detailed(), return_exceptions=True)
        bundle = StatisticsBundle()
        for name, result in (("basic", basic), ("detailed", detailed)):
            if isinstance(result, Exception):
                logger.error(f"Statistics request ({name}) failed: {result}")
                setattr(bundle, f"{name}_error", result)
            elif isinstance(result, BaseException):
                raise result
            else:
                setattr(bundle, name, result)
        return bundle
