"""Sentiment aggregation module."""

from .aggregator import (
    BEARISH_KEYWORDS,
    BULLISH_KEYWORDS,
    CapitalizedBigramExtractor,
    GazetteerExtractor,
    PlayerExtractor,
    SentimentAggregator,
    SentimentScore,
)

__all__ = [
    "BEARISH_KEYWORDS",
    "BULLISH_KEYWORDS",
    "CapitalizedBigramExtractor",
    "GazetteerExtractor",
    "PlayerExtractor",
    "SentimentAggregator",
    "SentimentScore",
]
