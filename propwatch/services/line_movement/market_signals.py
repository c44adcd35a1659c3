"""
Market Signals
Labels derived from public-ticket vs. money splits on a prop line.

``public_percent`` is the share of tickets on the over; ``money_percent``
is the share of handle on the over.
"""

from dataclasses import dataclass
from typing import Optional

from propwatch.core.config import Settings, get_settings
from propwatch.models.domain import MarketSignal


@dataclass(frozen=True)
class SignalThresholds:
    public_heavy: float = 70.0
    money_divergence: float = 15.0
    sharp_public_max: float = 40.0
    sharp_money_min: float = 60.0
    fade_public_min: float = 75.0
    rlm_public_high: float = 60.0
    rlm_public_low: float = 40.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SignalThresholds":
        settings = settings or get_settings()
        return cls(
            public_heavy=settings.PUBLIC_HEAVY_THRESHOLD,
            money_divergence=settings.MONEY_DIVERGENCE_THRESHOLD,
            sharp_public_max=settings.SHARP_PUBLIC_MAX,
            sharp_money_min=settings.SHARP_MONEY_MIN,
            fade_public_min=settings.FADE_PUBLIC_MIN,
            rlm_public_high=settings.RLM_PUBLIC_HIGH,
            rlm_public_low=settings.RLM_PUBLIC_LOW,
        )


def classify_market_signal(
    public_percent: Optional[float],
    money_percent: Optional[float],
    thresholds: Optional[SignalThresholds] = None,
) -> MarketSignal:
    """
    Rules are checked in order:
    - public trap: heavy public side the money does not follow
    - sharp play: light public side with heavy money
    - fade alert: very heavy public side regardless of money
    """
    if public_percent is None or money_percent is None:
        return MarketSignal.NEUTRAL
    t = thresholds or SignalThresholds.from_settings()

    if public_percent > t.public_heavy and abs(public_percent - money_percent) > t.money_divergence:
        return MarketSignal.PUBLIC_TRAP
    if public_percent < t.sharp_public_max and money_percent > t.sharp_money_min:
        return MarketSignal.SHARP_PLAY
    if public_percent > t.fade_public_min:
        return MarketSignal.FADE_ALERT
    return MarketSignal.NEUTRAL


def is_reverse_line_movement(
    movement: float,
    public_percent: Optional[float],
    thresholds: Optional[SignalThresholds] = None,
) -> bool:
    """Line moved against the side the public is on."""
    if public_percent is None:
        return False
    t = thresholds or SignalThresholds.from_settings()

    # Public on the over but the line dropped
    if public_percent > t.rlm_public_high and movement < 0:
        return True
    # Public on the under but the line rose
    if public_percent < t.rlm_public_low and movement > 0:
        return True
    return False
