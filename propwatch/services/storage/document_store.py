"""
PropWatch - Document Store
Append/query-latest persistence boundary used by the tracker, the
sentiment pipeline and the scheduler.
"""

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class Collections(str, Enum):
    """Collection names"""
    PROP_HISTORY = "prop_history"
    LINE_MOVEMENTS = "line_movements"
    SENTIMENT_DATA = "sentiment_data"
    TAILING_ALERTS = "tailing_alerts"
    SCRAPING_SESSIONS = "scraping_sessions"
    SENTIMENT_SESSIONS = "sentiment_sessions"


def _collection_name(collection: Any) -> str:
    return collection.value if isinstance(collection, Collections) else str(collection)


class DocumentStore(ABC):
    """
    Durable key-value/document store collaborator.

    Implementations only need two operations: append a record to a
    collection, and return the N most recent records of a collection whose
    fields match a filter. Records are ordered by their ``timestamp`` field
    (most recent first), falling back to insertion order.
    """

    @abstractmethod
    async def append(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a record and return it with its assigned ``id``."""

    @abstractmethod
    async def query_latest(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        n: int = 1,
    ) -> List[Dict[str, Any]]:
        """Return up to ``n`` matching records, most recent first."""


class InMemoryDocumentStore(DocumentStore):
    """Process-local store, used by tests and by the CLI host."""

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._stats = {"appends": 0, "queries": 0}

    async def append(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        name = _collection_name(collection)
        stored = copy.deepcopy(record)
        stored.setdefault("id", uuid.uuid4().hex)
        async with self._lock:
            stored["_seq"] = len(self._collections[name])
            self._collections[name].append(stored)
            self._stats["appends"] += 1
        return self._public(stored)

    async def query_latest(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        n: int = 1,
    ) -> List[Dict[str, Any]]:
        name = _collection_name(collection)
        filters = filters or {}
        async with self._lock:
            self._stats["queries"] += 1
            matches = [
                r for r in self._collections.get(name, [])
                if all(r.get(k) == v for k, v in filters.items())
            ]
        matches.sort(key=self._sort_key, reverse=True)
        return [self._public(r) for r in matches[:n]]

    def count(self, collection: str) -> int:
        return len(self._collections.get(_collection_name(collection), []))

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return [self._public(r) for r in self._collections.get(_collection_name(collection), [])]

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "collections": {name: len(docs) for name, docs in self._collections.items()},
        }

    @staticmethod
    def _sort_key(record: Dict[str, Any]):
        ts = record.get("timestamp")
        if isinstance(ts, str):
            try:
                ts = datetime.fromisoformat(ts.replace("Z", "+00:00")).timestamp()
            except ValueError:
                ts = None
        elif isinstance(ts, datetime):
            ts = ts.timestamp()
        elif not isinstance(ts, (int, float)):
            ts = None
        return (ts if ts is not None else float("-inf"), record["_seq"])

    @staticmethod
    def _public(record: Dict[str, Any]) -> Dict[str, Any]:
        return {k: copy.deepcopy(v) for k, v in record.items() if k != "_seq"}
