"""
Connector Registry
Ordered set of connectors the scheduler draws from each cycle.
"""

import logging
from typing import Iterable, List, Optional

from propwatch.core.config import Settings, get_settings
from propwatch.services.sentiment.aggregator import SentimentAggregator

from .base_connector import ConnectorKind, SourceConnector
from .draftkings import DraftKingsConnector
from .odds_api import OddsApiConnector
from .prizepicks import PrizePicksConnector
from .reddit import RedditConnector
from .twitter import TwitterConnector
from .underdog import UnderdogConnector

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """Connectors in registration order; availability is checked per cycle."""

    def __init__(self, connectors: Iterable[SourceConnector] = ()):
        self._connectors: List[SourceConnector] = []
        for connector in connectors:
            self.register(connector)

    def register(self, connector: SourceConnector) -> None:
        if any(c.name == connector.name for c in self._connectors):
            raise ValueError(f"Connector already registered: {connector.name}")
        self._connectors.append(connector)
        logger.debug(f"Registered connector {connector!r}")

    def _available(self, kind: ConnectorKind) -> List[SourceConnector]:
        return [c for c in self._connectors if c.kind == kind and c.is_available()]

    def props(self) -> List[SourceConnector]:
        return self._available(ConnectorKind.PROPS)

    def sentiment(self) -> List[SourceConnector]:
        return self._available(ConnectorKind.SENTIMENT)

    def all(self) -> List[SourceConnector]:
        return list(self._connectors)

    async def close(self) -> None:
        for connector in self._connectors:
            await connector.close()

    def __len__(self) -> int:
        return len(self._connectors)


def default_registry(
    settings: Optional[Settings] = None,
    aggregator: Optional[SentimentAggregator] = None,
) -> ConnectorRegistry:
    """The reference connector set, props first in scraping order."""
    settings = settings or get_settings()
    aggregator = aggregator or SentimentAggregator()
    return ConnectorRegistry([
        PrizePicksConnector(settings),
        UnderdogConnector(settings),
        DraftKingsConnector(settings),
        OddsApiConnector(settings),
        RedditConnector(aggregator, settings),
        TwitterConnector(aggregator, settings),
    ])
