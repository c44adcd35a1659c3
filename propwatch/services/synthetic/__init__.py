"""Synthetic market data (development stand-ins)."""

from .generator import (
    ConsensusSource,
    EngagementBandConsensus,
    MarketSplitSource,
    SyntheticMarketData,
)

__all__ = [
    "ConsensusSource",
    "EngagementBandConsensus",
    "MarketSplitSource",
    "SyntheticMarketData",
]
