"""Domain models."""

from .domain import (
    Direction,
    LineMovement,
    MarketSignal,
    PropSource,
    PropStatus,
    RiskLevel,
    ScrapedProp,
    ScrapingSession,
    Sentiment,
    SentimentRecord,
    SessionKind,
    SessionStatus,
    Significance,
    TailingSentiment,
    utcnow,
)

__all__ = [
    "Direction",
    "LineMovement",
    "MarketSignal",
    "PropSource",
    "PropStatus",
    "RiskLevel",
    "ScrapedProp",
    "ScrapingSession",
    "Sentiment",
    "SentimentRecord",
    "SessionKind",
    "SessionStatus",
    "Significance",
    "TailingSentiment",
    "utcnow",
]
