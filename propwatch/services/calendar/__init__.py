"""Season calendar context."""

from .sports_calendar import SeasonInfo, SeasonPhase, active_leagues_message, season_info

__all__ = ["SeasonInfo", "SeasonPhase", "active_leagues_message", "season_info"]
