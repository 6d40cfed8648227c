"""
Tests for the REST clients, using httpx.MockTransport.
"""

import json

import httpx
import pytest

from garage_admin.services.api_client import (
    NETWORK_ERROR,
    ApiError,
    AuthApiClient,
    EntityApiClient,
    StatisticsApiClient,
)
from garage_admin.services.auth_session import AuthSession
from garage_admin.ui_logic.dashboard_manager import DashboardStatsController
from garage_admin.ui_logic.entities import build_list_controller, build_selection_controller
from garage_admin.settings import AppSettings

BASE_URL = "http://api.test/api"


def make_client(entity, handler, token="t0k"):
    session = AuthSession(token)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EntityApiClient(entity, BASE_URL, session=session, client=http), session


class TestEntityApiClient:
    """Test URL building, auth headers and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_page_adapts_entity_keys(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "packages": [{"_id": "sp1", "name": "Basic"}],
                "page": 1,
                "pages": 2,
                "total": 13,
            })

        client, _ = make_client("service_packages", handler)
        page = await client.fetch_page(1, 12, " basic ")

        assert seen["url"].path == "/api/service-packages"
        assert seen["url"].params["search"] == "basic"
        assert seen["url"].params["limit"] == "12"
        assert seen["auth"] == "Bearer t0k"
        assert page.items == [{"_id": "sp1", "name": "Basic"}]
        assert page.pages == 2

    @pytest.mark.asyncio
    async def test_blank_search_not_sent(self):
        def handler(request):
            assert "search" not in request.url.params
            return httpx.Response(200, json={"data": []})

        client, _ = make_client("parts", handler)
        await client.list_page(1, 10, "   ")

    @pytest.mark.asyncio
    async def test_server_message_used(self):
        def handler(request):
            return httpx.Response(400, json={"message": "SKU already exists"})

        client, _ = make_client("parts", handler)
        with pytest.raises(ApiError) as exc:
            await client.create({"name": "Filter"})
        assert exc.value.message == "SKU already exists"
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_fallback_message(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        client, _ = make_client("garages", handler)
        with pytest.raises(ApiError, match="Failed to fetch garages"):
            await client.list_page()

    @pytest.mark.asyncio
    async def test_unauthorized_expires_session(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Token expired"})

        client, session = make_client("parts", handler)
        expired = []
        session.on_expired(lambda: expired.append(True))
        with pytest.raises(ApiError):
            await client.get("p1")
        assert session.get_token() is None
        assert expired == [True]

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = make_client("parts", handler)
        with pytest.raises(ApiError) as exc:
            await client.delete("p1")
        assert exc.value.message == NETWORK_ERROR
        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_detail_unwrapped(self):
        def handler(request):
            assert request.method == "PUT"
            assert json.loads(request.content) == {"name": "Oil"}
            return httpx.Response(200, json={"service": {"_id": "s1", "name": "Oil"}})

        client, _ = make_client("services", handler)
        assert await client.update("s1", {"name": "Oil"}) == {"_id": "s1", "name": "Oil"}

    @pytest.mark.asyncio
    async def test_multipart_upload(self):
        def handler(request):
            assert request.headers["Content-Type"].startswith("multipart/form-data")
            body = request.content
            assert b'name="parts_needed"' in body
            assert b'["p1", "p2"]' in body
            return httpx.Response(201, json={"data": {"_id": "s9"}})

        client, _ = make_client("services", handler)
        created = await client.create(
            {"name": "Brakes", "parts_needed": ["p1", "p2"]},
            files={"image": ("brakes.png", b"\x89PNG", "image/png")},
        )
        assert created == {"_id": "s9"}

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"data": []})

        client, _ = make_client("parts", handler, token=None)
        await client.list_page()


class TestAuthApiClient:
    """Test admin login."""

    @pytest.mark.asyncio
    async def test_login_stores_token(self):
        def handler(request):
            assert request.url.path == "/api/auth/admin/login"
            return httpx.Response(200, json={"user": {"email": "a@b.co"}, "token": "abc"})

        session = AuthSession()
        async with AuthApiClient(BASE_URL, session=session,
                                 client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as auth:
            body = await auth.login("a@b.co", "secret")
            assert body["user"]["email"] == "a@b.co"
            assert session.is_authenticated
            auth.logout()
        assert not session.is_authenticated

    @pytest.mark.asyncio
    async def test_login_failure(self):
        def handler(request):
            return httpx.Response(401, json={"message": "Invalid credentials"})

        auth = AuthApiClient(BASE_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(ApiError, match="Invalid credentials"):
            await auth.login("a@b.co", "wrong")


class TestControllersOverApi:
    """Test the registry factories wired to a real client."""

    @pytest.mark.asyncio
    async def test_selector_and_list_use_settings_limits(self):
        requests = []

        def handler(request):
            requests.append(request)
            if request.method == "DELETE":
                return httpx.Response(200, json={"success": True})
            return httpx.Response(200, json={"parts": [{"_id": "p1", "name": "Filter"}], "totalPages": 1})

        client, _ = make_client("parts", handler)
        settings = AppSettings()

        selector = build_selection_controller("parts", client, settings)
        await selector.open([])
        assert requests[-1].url.params["limit"] == "12"
        assert selector.visible_ids == ["p1"]

        listing = build_list_controller("parts", client, settings)
        await listing.load()
        assert requests[-1].url.params["limit"] == "10"
        assert await listing.delete_item("p1") == (True, None)
        assert any(r.method == "DELETE" and r.url.path == "/api/parts/p1" for r in requests)


class TestStatisticsApiClient:
    """Test the combined basic + detailed statistics fetch."""

    def _client(self, handler):
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return StatisticsApiClient(BASE_URL, session=AuthSession("t0k"), client=http)

    @pytest.mark.asyncio
    async def test_both_halves(self):
        def handler(request):
            if request.url.path == "/api/statistics":
                return httpx.Response(200, json={"success": True, "data": {"totalParts": 3}})
            assert request.url.path == "/api/statistics/detailed"
            return httpx.Response(200, json={"success": True, "data": {"insights": {"busiest": "g1"}}})

        bundle = await self._client(handler).statistics()
        assert bundle.basic == {"totalParts": 3}
        assert bundle.detailed == {"insights": {"busiest": "g1"}}
        assert bundle.basic_error is None and bundle.detailed_error is None

    @pytest.mark.asyncio
    async def test_partial_failure_reported_per_half(self):
        def handler(request):
            if request.url.path.endswith("/detailed"):
                return httpx.Response(500, json={"message": "Aggregation failed"})
            return httpx.Response(200, json={"success": True, "data": {"totalGarages": 2}})

        client = self._client(handler)
        dashboard = DashboardStatsController(client.statistics)
        assert await dashboard.load() is False
        assert dashboard.get_count("garages") == 2
        assert dashboard.error == "Aggregation failed"

    @pytest.mark.asyncio
    async def test_unsuccessful_body(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "message": "Not allowed"})

        bundle = await self._client(handler).statistics()
        assert isinstance(bundle.basic_error, ApiError)
        assert str(bundle.detailed_error) == "Not allowed"
