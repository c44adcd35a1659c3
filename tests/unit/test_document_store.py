"""
PropWatch - Document Store Tests
"""

import pytest

from propwatch.services.storage.document_store import Collections, InMemoryDocumentStore

pytestmark = pytest.mark.unit


class TestInMemoryDocumentStore:

    @pytest.mark.asyncio
    async def test_append_assigns_id(self, store):
        saved = await store.append(Collections.PROP_HISTORY, {"player": "A", "timestamp": "2024-10-06T17:00:00+00:00"})
        assert saved["id"]
        assert saved["player"] == "A"
        assert store.count(Collections.PROP_HISTORY) == 1

    @pytest.mark.asyncio
    async def test_query_latest_orders_by_timestamp(self, store):
        await store.append("prop_history", {"player": "A", "line": 1, "timestamp": "2024-10-06T18:00:00+00:00"})
        await store.append("prop_history", {"player": "A", "line": 2, "timestamp": "2024-10-06T17:00:00+00:00"})
        await store.append("prop_history", {"player": "B", "line": 3, "timestamp": "2024-10-06T19:00:00+00:00"})

        rows = await store.query_latest("prop_history", {"player": "A"}, 5)
        assert [r["line"] for r in rows] == [1, 2]

    @pytest.mark.asyncio
    async def test_query_latest_falls_back_to_insertion_order(self, store):
        await store.append("misc", {"n": 1})
        await store.append("misc", {"n": 2})
        rows = await store.query_latest("misc", None, 1)
        assert rows[0]["n"] == 2

    @pytest.mark.asyncio
    async def test_records_are_copies(self, store):
        record = {"tags": ["over"], "timestamp": "2024-10-06T17:00:00+00:00"}
        await store.append("sentiment_data", record)
        record["tags"].append("under")
        rows = await store.query_latest("sentiment_data")
        assert rows[0]["tags"] == ["over"]
        assert "_seq" not in rows[0]

    @pytest.mark.asyncio
    async def test_stats(self):
        store = InMemoryDocumentStore()
        await store.append(Collections.LINE_MOVEMENTS, {"timestamp": 1})
        await store.query_latest(Collections.LINE_MOVEMENTS)
        stats = store.get_stats()
        assert stats["appends"] == 1
        assert stats["queries"] == 1
        assert stats["collections"] == {"line_movements": 1}
