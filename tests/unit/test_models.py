"""
PropWatch - Domain Model Tests
"""

import pytest

from propwatch.models.domain import (
    Direction,
    LineMovement,
    PropSource,
    ScrapedProp,
    ScrapingSession,
    SessionKind,
    SessionStatus,
    Significance,
)

pytestmark = pytest.mark.unit


class TestScrapedProp:

    def test_key_and_prop_id(self, make_prop):
        prop = make_prop(267.5)
        assert prop.key == ("Patrick Mahomes", "Passing Yards", "DraftKings")
        assert prop.prop_id == "Patrick Mahomes-Passing Yards"

    def test_dict_round_trip_preserves_fields(self, make_prop):
        prop = make_prop(24.5, odds=-115, public_percent=68.0)
        restored = ScrapedProp.from_dict(prop.to_dict())
        assert restored == prop

    def test_with_splits_returns_new_instance(self, make_prop):
        prop = make_prop(24.5)
        updated = prop.with_splits(60.0, 55.0)
        assert prop.public_percent is None
        assert (updated.public_percent, updated.money_percent) == (60.0, 55.0)


class TestLineMovement:

    @pytest.mark.parametrize("prior,current,direction", [
        (267.5, 270.5, Direction.UP),
        (24.5, 23.5, Direction.DOWN),
        (24.5, 24.5, Direction.FLAT),
    ])
    def test_direction_follows_sign(self, make_prop, prior, current, direction):
        movement = LineMovement.between(make_prop(prior), make_prop(current, 5), Significance.MINOR)
        assert movement.movement == current - prior
        assert movement.direction is direction

    def test_between_copies_identity(self, make_prop):
        movement = LineMovement.between(make_prop(267.5), make_prop(270.5, 5), Significance.MAJOR)
        assert movement.prop_id == "Patrick Mahomes-Passing Yards"
        assert movement.source is PropSource.DRAFTKINGS
        assert movement.magnitude == 3.0
        assert movement.to_dict()["direction"] == "up"


class TestScrapingSession:

    def test_complete_from_running(self):
        session = ScrapingSession(session_id="s1", kind=SessionKind.PROPS)
        session.complete()
        assert session.status is SessionStatus.COMPLETED
        assert session.end_time is not None
        assert session.duration_ms >= 0

    def test_fail_records_error(self):
        session = ScrapingSession(session_id="s1", kind=SessionKind.SENTIMENT)
        session.fail("boom")
        assert session.status is SessionStatus.FAILED
        assert session.errors == ["boom"]

    def test_no_transition_out_of_terminal_state(self):
        session = ScrapingSession(session_id="s1", kind=SessionKind.PROPS)
        session.complete()
        with pytest.raises(ValueError):
            session.fail("late")
        with pytest.raises(ValueError):
            session.complete()
        assert session.status is SessionStatus.COMPLETED
        assert session.errors == []

    def test_to_dict_uses_start_time_as_timestamp(self):
        session = ScrapingSession(session_id="s1", kind=SessionKind.PROPS, manual=True)
        data = session.to_dict()
        assert data["timestamp"] == session.start_time.isoformat()
        assert data["manual"] is True
        assert data["kind"] == "props"
