"""
Tests for page adaptation and the shared fetch lifecycle.
"""

import asyncio

import pytest

from conftest import FakeBackend
from garage_admin.ui_logic.list_manager import PaginatedListController
from garage_admin.ui_logic.pagination import Page, adapt_page_response


class TestAdaptPageResponse:
    """Test normalization of the differing list response shapes."""

    def test_item_keys_in_priority_order(self):
        raw = {"parts": [{"_id": "p1"}], "data": [], "totalPages": 3, "page": 2, "total": 21}
        page = adapt_page_response(raw, limit=10, requested_page=2, item_keys=("parts", "data"))
        assert page.items == [{"_id": "p1"}]
        assert (page.page, page.pages, page.total) == (2, 3, 21)

    def test_pages_key_fallback(self):
        page = adapt_page_response({"data": [], "pages": 4}, limit=10)
        assert page.pages == 4

    def test_page_clamped_to_pages(self):
        page = adapt_page_response({"data": [], "page": 9, "totalPages": 2}, limit=10, requested_page=9)
        assert page.page == 2

    def test_oversized_page_truncated(self):
        rows = [{"_id": str(i)} for i in range(15)]
        page = adapt_page_response({"data": rows}, limit=10)
        assert len(page.items) == 10
        assert page.total == 15
        assert page.pages == 2

    def test_pages_derived_from_total(self):
        page = adapt_page_response({"data": [{"_id": "a"}], "total": 21}, limit=10)
        assert page.pages == 3

    def test_bare_list_and_page_passthrough(self):
        page = adapt_page_response([{"_id": "a"}, {"_id": "b"}], limit=10)
        assert page.total == 2 and page.pages == 1
        assert adapt_page_response(page, limit=10) is page

    def test_rejects_unexpected_type(self):
        with pytest.raises(TypeError):
            adapt_page_response("nope", limit=10)

    def test_to_dict(self):
        assert Page(items=[1], page=1, pages=1, total=1, limit=5).to_dict()["limit"] == 5


class TestFetchLifecycle:
    """Test search debouncing, paging and stale-response suppression."""

    @pytest.mark.asyncio
    async def test_search_resets_to_first_page(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=5, debounce_delay=0.01)
        await ctrl.load()
        await ctrl.change_page(3)
        assert ctrl.page == 3

        ctrl.set_search_text("Item 2")
        assert ctrl.query.raw_text == "Item 2"
        assert ctrl.search_pending
        await asyncio.sleep(0.03)
        await ctrl.wait_until_idle()

        assert ctrl.query.committed_text == "Item 2"
        assert ctrl.page == 1
        assert backend.calls[-1] == (1, 5, "Item 2")

    @pytest.mark.asyncio
    async def test_typing_burst_issues_one_fetch(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, debounce_delay=0.02)
        for text in ("I", "It", "Ite", "Item"):
            ctrl.set_search_text(text)
        await asyncio.sleep(0.06)
        await ctrl.wait_until_idle()
        assert backend.calls == [(1, 10, "Item")]

    @pytest.mark.asyncio
    async def test_same_committed_text_does_not_refetch(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, debounce_delay=0)
        await ctrl.load()
        ctrl.set_search_text("")
        ctrl.flush_search()
        await ctrl.wait_until_idle()
        assert backend.calls == [(1, 10, "")]

    @pytest.mark.asyncio
    async def test_same_text_after_failure_retries(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=5, debounce_delay=0.01)
        await ctrl.load()
        backend.fail_with = RuntimeError("network down")
        ctrl.set_search_text("Item 2")
        await asyncio.sleep(0.03)
        await ctrl.wait_until_idle()
        assert ctrl.error == "network down"
        calls_before = len(backend.calls)

        backend.fail_with = None
        ctrl.set_search_text("Item 2")
        await asyncio.sleep(0.03)
        await ctrl.wait_until_idle()

        assert len(backend.calls) == calls_before + 1
        assert backend.calls[-1] == (1, 5, "Item 2")
        assert ctrl.error is None
        assert ctrl.visible_ids[0] == "id2"

    @pytest.mark.asyncio
    async def test_empty_result(self):
        ctrl = PaginatedListController(FakeBackend(count=0).fetch_page)
        assert await ctrl.load() is True
        assert ctrl.items == []
        assert (ctrl.page, ctrl.pages, ctrl.total) == (1, 1, 0)
        assert await ctrl.change_page(2) is False

    @pytest.mark.asyncio
    async def test_change_page_out_of_range_is_ignored(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=10)
        await ctrl.load()
        assert ctrl.pages == 3
        assert await ctrl.change_page(4) is False
        assert await ctrl.change_page(0) is False
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_change_page_fetches_requested_page(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=10)
        await ctrl.load()
        assert await ctrl.change_page(2) is True
        assert backend.calls[-1] == (2, 10, "")
        assert ctrl.visible_ids[0] == "id11"
        assert ctrl.pagination == {'page': 2, 'pages': 3, 'total': 30, 'limit': 10}

    @pytest.mark.asyncio
    async def test_stale_response_is_dropped(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=5, debounce_delay=0)
        backend.hold("Item 1")

        ctrl.set_search_text("Item 1")
        ctrl.flush_search()
        await asyncio.sleep(0)
        ctrl.set_search_text("Item 2")
        ctrl.flush_search()
        await asyncio.sleep(0.01)

        assert ctrl.visible_ids[0] == "id2"
        backend.release("Item 1")
        await ctrl.wait_until_idle()

        # the late "Item 1" response must not overwrite the newer results
        assert ctrl.query.committed_text == "Item 2"
        assert ctrl.visible_ids[0] == "id2"
        assert ctrl.loading is False

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_items(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, limit=5)
        await ctrl.load()
        before = list(ctrl.items)

        backend.fail_with = RuntimeError("Failed to fetch parts")
        assert await ctrl.refresh() is False
        assert ctrl.error == "Failed to fetch parts"
        assert ctrl.items == before
        assert ctrl.loading is False

    @pytest.mark.asyncio
    async def test_failure_without_message_uses_label(self, backend):
        ctrl = PaginatedListController(backend.fetch_page, label="garages")
        backend.fail_with = RuntimeError()
        await ctrl.load()
        assert ctrl.error == "Failed to load garages"

    @pytest.mark.asyncio
    async def test_state_changed_listener(self, backend):
        ctrl = PaginatedListController(backend.fetch_page)
        seen = []
        ctrl.add_listener("state_changed", lambda c: seen.append(c.loading))
        await ctrl.load()
        assert seen == [True, False]

    def test_invalid_limit_rejected(self, backend):
        with pytest.raises(ValueError):
            PaginatedListController(backend.fetch_page, limit=0)
