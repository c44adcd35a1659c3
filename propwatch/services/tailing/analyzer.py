"""
PropWatch - Tailing Analyzer
Aggregates picks by (player, prop type) into public-consensus risk signals
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from propwatch.core.config import Settings, get_settings
from propwatch.models.domain import RiskLevel, Sentiment, SentimentRecord, TailingSentiment
from propwatch.services.sentiment.aggregator import GENERIC_PROP_TYPE
from propwatch.services.synthetic.generator import ConsensusSource, SyntheticMarketData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskThresholds:
    """Tail-rate cutoffs for risk classification"""
    overtailed: float = 70.0
    contrarian: float = 30.0

    def classify(self, tail_rate: float) -> RiskLevel:
        if tail_rate > self.overtailed:
            return RiskLevel.OVERTAILED
        if tail_rate < self.contrarian:
            return RiskLevel.CONTRARIAN
        return RiskLevel.CONSENSUS


def tailing_key(player: str, prop_type: str) -> str:
    return f"{player}_{prop_type}"


def _majority_sentiment(labels: Counter) -> Sentiment:
    bullish = labels.get(Sentiment.BULLISH, 0)
    bearish = labels.get(Sentiment.BEARISH, 0)
    if bullish > bearish:
        return Sentiment.BULLISH
    if bearish > bullish:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


class TailingAnalyzer:
    """Computes tail rate and risk level per (player, prop type) key."""

    def __init__(
        self,
        consensus: Optional[ConsensusSource] = None,
        thresholds: Optional[RiskThresholds] = None,
        rebalance: Optional[bool] = None,
        tail_rate_increment: Optional[float] = None,
        tail_rate_cap: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.consensus = consensus or SyntheticMarketData(settings.SYNTHETIC_SEED)
        self.thresholds = thresholds or RiskThresholds(
            overtailed=settings.TAIL_OVERTAILED_THRESHOLD,
            contrarian=settings.TAIL_CONTRARIAN_THRESHOLD,
        )
        self.rebalance_enabled = settings.TAILING_REBALANCE_ENABLED if rebalance is None else rebalance
        self.tail_rate_increment = (
            settings.TAIL_RATE_INCREMENT if tail_rate_increment is None else tail_rate_increment
        )
        self.tail_rate_cap = settings.TAIL_RATE_CAP if tail_rate_cap is None else tail_rate_cap

    def aggregate(self, records: Iterable[SentimentRecord]) -> List[TailingSentiment]:
        """
        Group picks and score public consensus for each group.

        Records with no identifiable player are skipped. The result is a
        fresh aggregation over ``records``; nothing is carried between calls.
        """
        groups: Dict[str, TailingSentiment] = {}
        authors: Dict[str, Set[str]] = {}
        labels: Dict[str, Counter] = {}

        for record in records:
            if not record.player:
                continue

            prop_type = record.prop_type or GENERIC_PROP_TYPE
            key = tailing_key(record.player, prop_type)
            existing = groups.get(key)

            if existing is None:
                groups[key] = TailingSentiment(
                    key=key,
                    player=record.player,
                    prop_type=prop_type,
                    tail_rate=min(self.consensus.tail_rate(record), self.tail_rate_cap),
                    sources=[record.community] if record.community else [],
                )
                authors[key] = {record.author} if record.author else set()
                labels[key] = Counter([record.sentiment])
                continue

            existing.mention_count += 1
            existing.tail_rate = min(existing.tail_rate + self.tail_rate_increment, self.tail_rate_cap)
            if record.author:
                authors[key].add(record.author)
            if record.community and record.community not in existing.sources:
                existing.sources.append(record.community)
            labels[key][record.sentiment] += 1

        results = list(groups.values())
        for item in results:
            item.influencer_count = max(len(authors[item.key]), 1)
            item.sentiment = _majority_sentiment(labels[item.key])
            item.risk_level = self.thresholds.classify(item.tail_rate)

        if self.rebalance_enabled:
            self.rebalance(results)

        logger.debug(f"[Tailing] Aggregated {len(results)} keys")
        return results

    def rebalance(self, results: List[TailingSentiment]) -> None:
        """
        Presentation step: make sure the display has an overtailed and a
        contrarian entry whenever there is enough data to show both.
        """
        if not results:
            return

        overtailed = [r for r in results if r.risk_level is RiskLevel.OVERTAILED]
        if not overtailed:
            highest = max(results, key=lambda r: r.tail_rate)
            highest.risk_level = RiskLevel.OVERTAILED
            highest.tail_rate = max(highest.tail_rate, self.thresholds.overtailed)
            overtailed = [highest]

        if len(results) < 2 or any(r.risk_level is RiskLevel.CONTRARIAN for r in results):
            return

        # never demote the only overtailed entry
        candidates = [r for r in results if not (len(overtailed) == 1 and r is overtailed[0])]
        lowest = min(candidates, key=lambda r: r.tail_rate)
        lowest.risk_level = RiskLevel.CONTRARIAN
        lowest.tail_rate = min(lowest.tail_rate, self.thresholds.contrarian)

    @staticmethod
    def top(results: List[TailingSentiment], n: int) -> List[TailingSentiment]:
        return sorted(results, key=lambda r: r.tail_rate, reverse=True)[:n]
