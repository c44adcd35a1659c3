"""Line-movement detection module."""

from .market_signals import SignalThresholds, classify_market_signal, is_reverse_line_movement
from .tracker import BatchResult, LineMovementTracker, RecordOutcome, SignificanceBands

__all__ = [
    "BatchResult",
    "LineMovementTracker",
    "RecordOutcome",
    "SignalThresholds",
    "SignificanceBands",
    "classify_market_signal",
    "is_reverse_line_movement",
]
