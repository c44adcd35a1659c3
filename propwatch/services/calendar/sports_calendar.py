"""
Sports Calendar
Season-phase context used to explain thin prop coverage in scheduler status.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional

from propwatch.models.domain import utcnow


class SeasonPhase(str, Enum):
    PRESEASON = "preseason"
    REGULAR = "regular"
    PLAYOFFS = "playoffs"
    OFFSEASON = "offseason"


@dataclass(frozen=True)
class SeasonInfo:
    sport: str
    phase: SeasonPhase
    message: str

    @property
    def in_season(self) -> bool:
        return self.phase is not SeasonPhase.OFFSEASON

    def to_dict(self) -> Dict[str, object]:
        return {
            "sport": self.sport,
            "in_season": self.in_season,
            "phase": self.phase.value,
            "message": self.message,
        }


MESSAGES = {
    ("NFL", SeasonPhase.PRESEASON): "NFL preseason - limited prop markets while teams evaluate rosters and rest starters.",
    ("NFL", SeasonPhase.REGULAR): "NFL regular season active - peak prop season with games Thursday, Sunday and Monday.",
    ("NFL", SeasonPhase.PLAYOFFS): "NFL playoffs - few games but heavy betting on the championship rounds and Super Bowl.",
    ("NFL", SeasonPhase.OFFSEASON): "NFL offseason - no active games. Betting returns with preseason in the summer.",
    ("NBA", SeasonPhase.REGULAR): "NBA regular season active - high-volume prop betting with games nearly every day.",
    ("NBA", SeasonPhase.PLAYOFFS): "NBA playoffs - fewer games, higher stakes through the conference finals and NBA Finals.",
    ("NBA", SeasonPhase.OFFSEASON): "NBA offseason - no active games. The season returns in October.",
    ("MLB", SeasonPhase.PRESEASON): "MLB Spring Training - limited props until the regular season opens in April.",
    ("MLB", SeasonPhase.REGULAR): "MLB regular season active - daily games give steady prop volume.",
    ("MLB", SeasonPhase.PLAYOFFS): "MLB postseason - limited games with heavy focus on the Division, Championship and World Series.",
    ("MLB", SeasonPhase.OFFSEASON): "MLB offseason - no active games. Spring Training starts in March.",
}


def _nfl_phase(today: date) -> SeasonPhase:
    month = today.month
    if month == 2 and today.day > 15:
        return SeasonPhase.OFFSEASON
    if month in (1, 2):
        return SeasonPhase.PLAYOFFS
    if month >= 9:
        return SeasonPhase.REGULAR
    if month in (7, 8):
        return SeasonPhase.PRESEASON
    return SeasonPhase.OFFSEASON


def _nba_phase(today: date) -> SeasonPhase:
    month = today.month
    if 4 <= month <= 6:
        return SeasonPhase.PLAYOFFS
    if month >= 10 or month <= 3:
        return SeasonPhase.REGULAR
    return SeasonPhase.OFFSEASON


def _mlb_phase(today: date) -> SeasonPhase:
    month = today.month
    if month == 3:
        return SeasonPhase.PRESEASON
    if 4 <= month <= 9:
        return SeasonPhase.REGULAR
    if month in (10, 11):
        return SeasonPhase.PLAYOFFS
    return SeasonPhase.OFFSEASON


PHASE_RULES = {
    "NFL": _nfl_phase,
    "NBA": _nba_phase,
    "MLB": _mlb_phase,
}


def season_info(sport: str, today: Optional[date] = None) -> SeasonInfo:
    """Season phase of ``sport`` on ``today`` (defaults to the current UTC date)."""
    today = today or utcnow().date()
    code = sport.upper()
    rule = PHASE_RULES.get(code)
    if rule is None:
        return SeasonInfo(code, SeasonPhase.OFFSEASON, f"{sport} season information not available")
    phase = rule(today)
    return SeasonInfo(code, phase, MESSAGES[(code, phase)])


def active_leagues_message(today: Optional[date] = None) -> str:
    active = [info for info in (season_info(s, today) for s in PHASE_RULES) if info.in_season]
    if not active:
        return "All major sports are in their offseason. This is typical during the summer months."
    names = ", ".join(f"{info.sport} ({info.phase.value})" for info in active)
    return f"Currently active: {names}. Limited props may mean scheduled rest days or gaps between series."
