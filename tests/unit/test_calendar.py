"""
PropWatch - Sports Calendar Tests
"""

from datetime import date

import pytest

from propwatch.services.calendar import SeasonPhase, active_leagues_message, season_info

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("sport,day,phase", [
    ("NFL", date(2024, 10, 6), SeasonPhase.REGULAR),
    ("NFL", date(2024, 1, 20), SeasonPhase.PLAYOFFS),
    ("NFL", date(2024, 2, 20), SeasonPhase.OFFSEASON),
    ("NFL", date(2024, 8, 10), SeasonPhase.PRESEASON),
    ("NBA", date(2024, 5, 1), SeasonPhase.PLAYOFFS),
    ("NBA", date(2024, 12, 25), SeasonPhase.REGULAR),
    ("NBA", date(2024, 8, 1), SeasonPhase.OFFSEASON),
    ("MLB", date(2024, 3, 10), SeasonPhase.PRESEASON),
    ("MLB", date(2024, 7, 4), SeasonPhase.REGULAR),
    ("MLB", date(2024, 10, 20), SeasonPhase.PLAYOFFS),
    ("mlb", date(2024, 1, 5), SeasonPhase.OFFSEASON),
])
def test_season_phase(sport, day, phase):
    info = season_info(sport, day)
    assert info.phase is phase
    assert info.sport == sport.upper()


def test_unknown_sport():
    info = season_info("NHL", date(2024, 1, 5))
    assert not info.in_season
    assert "not available" in info.message


def test_active_leagues_message():
    message = active_leagues_message(date(2024, 10, 6))
    assert message.startswith("Currently active: NFL (regular), NBA (regular), MLB (playoffs)")


def test_offseason_leagues_omitted():
    message = active_leagues_message(date(2024, 6, 10))
    assert "NBA (playoffs)" in message
    assert "NFL" not in message
