"""
Pytest configuration for ensuring the project root is on sys.path.

This allows test modules to import the in-repo package layout like:
    from garage_admin.ui_logic.selection_manager import PaginatedSelectionController

Without relying on external environment variables. Also provides a fake
paginated backend shared by the controller tests.
"""

import asyncio
import os
import sys

import pytest

# Insert the repository root (one directory up from tests/) at the
# beginning of sys.path to prioritize local modules over site-packages.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


class FakeBackend:
    """In-memory `fetch_page` capability over a list of `{_id, name}` rows.

    Calls are recorded. A query registered with `hold(query)` blocks until
    `release(query)` so tests can control response ordering.
    """

    def __init__(self, count=30, prefix="id"):
        self.rows = [{"_id": f"{prefix}{i}", "name": f"Item {i}"} for i in range(1, count + 1)]
        self.calls = []
        self.fail_with = None
        self._gates = {}

    def hold(self, query):
        self._gates[query] = asyncio.Event()

    def release(self, query):
        self._gates[query].set()

    async def fetch_page(self, page, limit, query):
        self.calls.append((page, limit, query))
        gate = self._gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        rows = [r for r in self.rows if query.lower() in r["name"].lower()]
        pages = max(1, -(-len(rows) // limit))
        start = (page - 1) * limit
        return {
            "data": rows[start:start + limit],
            "page": page,
            "totalPages": pages,
            "total": len(rows),
        }

    async def delete(self, entity_id):
        before = len(self.rows)
        self.rows = [r for r in self.rows if r["_id"] != entity_id]
        if len(self.rows) == before:
            raise RuntimeError("Not found")


@pytest.fixture
def backend():
    return FakeBackend()
