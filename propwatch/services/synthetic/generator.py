"""
Synthetic Market Data
=====================
Stand-in values for market data the pipeline cannot yet measure:
public/money betting splits and public-consensus tail rates.

Everything here is development filler. The analyzers depend only on the
``ConsensusSource`` / ``MarketSplitSource`` interfaces, so a real feed can
replace ``SyntheticMarketData`` without touching classification code.
"""

import random
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from propwatch.models.domain import ScrapedProp, SentimentRecord


class ConsensusSource(ABC):
    """Supplies the initial tail rate (0-100) for a pick."""

    @abstractmethod
    def tail_rate(self, record: SentimentRecord) -> float:
        ...


class MarketSplitSource(ABC):
    """Supplies (public %, money %) for a prop line."""

    @abstractmethod
    def splits(self, prop: ScrapedProp) -> Tuple[float, float]:
        ...

    def fill_splits(self, prop: ScrapedProp) -> ScrapedProp:
        """Return the prop with splits set only where the connector left them empty."""
        if prop.public_percent is not None and prop.money_percent is not None:
            return prop
        public, money = self.splits(prop)
        return prop.with_splits(
            prop.public_percent if prop.public_percent is not None else public,
            prop.money_percent if prop.money_percent is not None else money,
        )


class EngagementBandConsensus(ConsensusSource):
    """Deterministic band midpoints, for callers that want stable output."""

    BANDS = ((180, 85.0), (120, 67.5), (60, 47.5))
    FLOOR = 30.0

    def tail_rate(self, record: SentimentRecord) -> float:
        for threshold, rate in self.BANDS:
            if record.engagement > threshold:
                return rate
        return self.FLOOR


class SyntheticMarketData(ConsensusSource, MarketSplitSource):
    """Randomized placeholder values in the ranges the dashboard expects."""

    # engagement threshold -> (base, jitter span)
    TAIL_BANDS = ((180, 75, 20), (120, 55, 25), (60, 35, 25))
    TAIL_FLOOR = (15, 30)

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def tail_rate(self, record: SentimentRecord) -> float:
        for threshold, base, span in self.TAIL_BANDS:
            if record.engagement > threshold:
                return float(base + self._rng.randrange(span))
        base, span = self.TAIL_FLOOR
        return float(base + self._rng.randrange(span))

    def splits(self, prop: ScrapedProp) -> Tuple[float, float]:
        public = 45 + round(self._rng.random() * 40)
        money = 40 + round(self._rng.random() * 45)
        return float(public), float(money)
