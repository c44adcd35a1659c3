"""
PropWatch - Test Configuration
Pytest fixtures and configuration for the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from unittest.mock import Mock

import pytest

from propwatch.core.config import Settings
from propwatch.models.domain import PropSource, ScrapedProp, Sentiment, SentimentRecord
from propwatch.services.alerting.alerting_service import AlertingService
from propwatch.services.connectors.base_connector import ConnectorKind, SourceConnector
from propwatch.services.storage.document_store import InMemoryDocumentStore

BASE_TIME = datetime(2024, 10, 6, 17, 0, tzinfo=timezone.utc)


class StubConnector(SourceConnector):
    """Connector returning canned records, or raising a canned error."""

    def __init__(
        self,
        name: str,
        kind: ConnectorKind = ConnectorKind.PROPS,
        records: Optional[List[Any]] = None,
        error: Optional[Exception] = None,
        units_found: Optional[int] = None,
        available: bool = True,
    ):
        super().__init__()
        self.name = name
        self.kind = kind
        self.records = records or []
        self.error = error
        self.units = units_found
        self.available = available
        self.calls = 0

    def is_available(self) -> bool:
        return self.available

    async def fetch(self):
        self.calls += 1
        self.units_found = self.units if self.units is not None else len(self.records)
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture
def settings() -> Settings:
    """Settings with delays removed and a fixed synthetic seed."""
    return Settings(
        _env_file=None,
        INTER_CONNECTOR_DELAY_SECONDS=0,
        INTER_REQUEST_DELAY_SECONDS=0,
        SYNTHETIC_SEED=7,
        ODDS_API_KEY="",
        TWITTER_BEARER_TOKEN="",
        SLACK_WEBHOOK_URL="",
        TELEGRAM_BOT_TOKEN="",
        TELEGRAM_CHAT_ID="",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def alerting() -> Mock:
    return Mock(spec=AlertingService)


@pytest.fixture
def make_prop():
    """Factory for prop observations at BASE_TIME + offset minutes."""
    def _make(
        line: float,
        minutes: int = 0,
        player: str = "Patrick Mahomes",
        stat_type: str = "Passing Yards",
        source: PropSource = PropSource.DRAFTKINGS,
        **kwargs,
    ) -> ScrapedProp:
        return ScrapedProp(
            player=player,
            team="KC",
            stat_type=stat_type,
            line=line,
            source=source,
            timestamp=BASE_TIME + timedelta(minutes=minutes),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_record():
    """Factory for classified sentiment records."""
    def _make(
        player: Optional[str] = "Jayson Tatum",
        prop_type: Optional[str] = "Points",
        author: str = "user1",
        engagement: float = 50,
        community: str = "r/nba",
        sentiment: Sentiment = Sentiment.BULLISH,
        timestamp: Optional[datetime] = None,
        post_id: Optional[str] = None,
    ) -> SentimentRecord:
        return SentimentRecord(
            source="Reddit",
            community=community,
            content=f"{player} over {prop_type}",
            author=author,
            sentiment=sentiment,
            engagement=engagement,
            confidence=40,
            timestamp=timestamp or BASE_TIME,
            player=player,
            prop_type=prop_type,
            post_id=post_id,
        )
    return _make


@pytest.fixture
def stub_connector():
    """The StubConnector class, for building connector registries."""
    return StubConnector
