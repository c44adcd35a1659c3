"""
PropWatch - Source Connector Tests
"""

import asyncio

import pytest

from propwatch.core.exceptions import ConnectorError, ConnectorTimeoutError
from propwatch.models.domain import PropSource, PropStatus, Sentiment
from propwatch.services.connectors import (
    ConnectorKind,
    ConnectorRegistry,
    DraftKingsConnector,
    HttpConnector,
    OddsApiConnector,
    PrizePicksConnector,
    RedditConnector,
    TwitterConnector,
    UnderdogConnector,
    clean_text,
    default_registry,
    parse_number,
    parse_odds,
)
from propwatch.services.sentiment import SentimentAggregator

pytestmark = pytest.mark.unit


class _FakeResponse:

    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def text(self):
        return self._text


class _FakeSession:
    """Stands in for aiohttp.ClientSession.get(...) as an async context manager."""

    closed = False

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, params=None, headers=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        return self

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self.response

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def close(self):
        self.closed = True


class _FakeHttp(HttpConnector):
    name = "Fake"

    async def fetch(self):
        return await self.get_json("https://example.test/feed")


class TestParsingHelpers:

    @pytest.mark.parametrize("value,expected", [
        ("24.5 pts", 24.5),
        ("$1,200", 1200.0),
        (7, 7.0),
        ("-3.5", -3.5),
        ("N/A", 0.0),
        (None, 0.0),
    ])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("-115", -115),
        ("+120", 120),
        ("−110", -110),
        (150, 150),
        ("EVEN", None),
    ])
    def test_parse_odds(self, value, expected):
        assert parse_odds(value) == expected

    def test_clean_text(self):
        assert clean_text("  Patrick\n  Mahomes ") == "Patrick Mahomes"
        assert clean_text(None) == ""


class TestHttpConnector:

    @pytest.mark.asyncio
    async def test_timeout_mapped(self, settings):
        connector = _FakeHttp(settings)
        connector.session = _FakeSession(error=asyncio.TimeoutError())

        with pytest.raises(ConnectorTimeoutError) as exc_info:
            await connector.fetch()
        assert exc_info.value.source == "Fake"
        assert connector.stats["failed_requests"] == 1

    @pytest.mark.asyncio
    async def test_non_200_is_connector_error(self, settings):
        connector = _FakeHttp(settings)
        connector.session = _FakeSession(_FakeResponse(status=503))

        with pytest.raises(ConnectorError) as exc_info:
            await connector.fetch()
        assert not isinstance(exc_info.value, ConnectorTimeoutError)
        assert "HTTP 503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json_is_connector_error(self, settings):
        connector = _FakeHttp(settings)
        connector.session = _FakeSession(_FakeResponse(payload=ValueError("Expecting value")))

        with pytest.raises(ConnectorError, match="Invalid JSON"):
            await connector.fetch()

    @pytest.mark.asyncio
    async def test_success(self, settings):
        connector = _FakeHttp(settings, user_agent="tests/1.0")
        session = _FakeSession(_FakeResponse(payload={"ok": True}))
        connector.session = session

        assert await connector.fetch() == {"ok": True}
        assert session.requests[0]["headers"]["User-Agent"] == "tests/1.0"
        assert connector.get_stats()["successful_requests"] == 1

        await connector.close()
        assert session.closed
        assert connector.session is None


class TestHtmlCardConnectors:

    PAGE = """
    <div class="pick-card">
      <span class="player-name">Patrick Mahomes</span>
      <span class="stat-type">Passing Yards</span>
      <span class="line">267.5</span>
      <span class="team">KC</span>
      <span class="matchup">KC @ LV</span>
    </div>
    <div class="pick-card">
      <span class="player-name">Travis Kelce</span>
      <span class="stat-type">Receptions</span>
    </div>
    <div class="pick-card">
      <span class="player-name">Isiah Pacheco</span>
      <span class="stat-type">Rushing Yards</span>
      <span class="line">N/A</span>
    </div>
    """

    def test_prizepicks_cards(self, settings):
        connector = PrizePicksConnector(settings)
        props = connector.parse_page(self.PAGE)

        assert connector.units_found == 3
        assert len(props) == 1
        prop = props[0]
        assert prop.player == "Patrick Mahomes"
        assert prop.line == 267.5
        assert prop.team == "KC"
        assert prop.game_info == "KC @ LV"
        assert prop.source is PropSource.PRIZEPICKS

    def test_underdog_fallback_selectors(self, settings):
        html = """
        <div class="prop-selection">
          <span class="athlete-name">Jayson Tatum</span>
          <span class="pick-type">Points</span>
          <span class="target">27.5</span>
        </div>
        """
        connector = UnderdogConnector(settings)
        props = connector.parse_page(html)

        assert [(p.player, p.stat_type, p.line) for p in props] == [("Jayson Tatum", "Points", 27.5)]
        assert props[0].source is PropSource.UNDERDOG
        assert props[0].game_info is None

    def test_client_rendered_page_finds_nothing(self, settings):
        connector = PrizePicksConnector(settings)
        assert connector.parse_page("<div id='root'></div>") == []
        assert connector.units_found == 0


class TestDraftKings:

    PAYLOAD = {
        "eventGroup": {
            "events": [
                {
                    "name": "KC Chiefs @ LV Raiders",
                    "teamName1": "KC Chiefs",
                    "displayGroups": [{
                        "markets": [{
                            "name": "Passing Yards",
                            "outcomes": [
                                {"participant": "Patrick Mahomes", "line": 267.5,
                                 "oddsAmerican": "-115", "percentOfSpread": 68},
                                {"participant": "Gardner Minshew", "line": 210.5},
                                {"label": "Over", "oddsAmerican": "-110"},
                            ],
                        }],
                    }],
                },
                {"name": "Empty", "displayGroups": []},
            ],
        },
    }

    def test_parse_payload(self, settings):
        connector = DraftKingsConnector(settings)
        props = connector.parse_payload(self.PAYLOAD)

        assert connector.units_found == 2
        assert len(props) == 2
        mahomes, minshew = props
        assert mahomes.odds == -115
        assert mahomes.status is PropStatus.ACTIVE
        assert mahomes.public_percent == 68.0
        assert mahomes.team == "KC Chiefs"
        assert mahomes.game_info == "KC Chiefs @ LV Raiders"
        assert minshew.status is PropStatus.SUSPENDED
        assert minshew.public_percent is None

    def test_unexpected_shape(self, settings):
        connector = DraftKingsConnector(settings)
        assert connector.parse_payload({"error": "geo-blocked"}) == []
        assert connector.parse_payload(None) == []

    def test_null_market_skipped(self, settings):
        payload = {"eventGroup": {"events": [{
            "teamName1": "KC Chiefs",
            "displayGroups": [None, {"markets": [
                None,
                {"name": "Passing Yards", "outcomes": [
                    {"participant": "Patrick Mahomes", "line": 267.5, "oddsAmerican": "-115"},
                ]},
            ]}],
        }]}}

        props = DraftKingsConnector(settings).parse_payload(payload)
        assert [(p.player, p.line) for p in props] == [("Patrick Mahomes", 267.5)]


class TestOddsApi:

    PAYLOAD = {
        "home_team": "Las Vegas Raiders",
        "away_team": "Kansas City Chiefs",
        "bookmakers": [
            {"markets": [{
                "key": "player_pass_yds",
                "outcomes": [
                    {"name": "Over", "description": "Patrick Mahomes", "point": 267.5, "price": -115},
                    {"name": "Under", "description": "Patrick Mahomes", "point": 267.5, "price": -105},
                ],
            }]},
            {"markets": [{
                "key": "player_pass_yds",
                "outcomes": [
                    {"name": "Over", "description": "Patrick Mahomes", "point": 270.5, "price": -110},
                ],
            }]},
        ],
    }

    def test_requires_api_key(self, settings):
        assert not OddsApiConnector(settings).is_available()
        keyed = settings.model_copy(update={"ODDS_API_KEY": "abc"})
        assert OddsApiConnector(keyed).is_available()

    def test_first_bookmaker_over_outcome(self, settings):
        props = OddsApiConnector(settings).parse_event_odds(self.PAYLOAD)

        assert len(props) == 1
        prop = props[0]
        assert prop.stat_type == "Passing Yards"
        assert prop.line == 267.5
        assert prop.odds == -115
        assert prop.source is PropSource.ODDS_API
        assert prop.game_info == "Kansas City Chiefs @ Las Vegas Raiders"

    def test_null_market_skipped(self, settings):
        payload = {"bookmakers": [
            None,
            {"markets": [
                None,
                {"key": "player_points", "outcomes": [
                    {"name": "Over", "description": "Jayson Tatum", "point": 27.5, "price": -110},
                ]},
            ]},
        ]}

        props = OddsApiConnector(settings).parse_event_odds(payload)
        assert [(p.player, p.stat_type, p.line) for p in props] == [("Jayson Tatum", "Points", 27.5)]

    @pytest.mark.asyncio
    async def test_raises_when_every_sport_fails(self, settings):
        connector = OddsApiConnector(settings.model_copy(update={"ODDS_API_KEY": "abc"}))
        connector.session = _FakeSession(_FakeResponse(status=401))

        with pytest.raises(ConnectorError):
            await connector.fetch()


class TestSentimentConnectors:

    LISTING = {
        "data": {
            "children": [
                {"data": {
                    "title": "Patrick Mahomes over 267.5 passing yards is a lock",
                    "author": "chiefsfan",
                    "score": 150,
                    "num_comments": 30,
                    "created_utc": 1728234000,
                    "selftext": "",
                    "name": "t3_1fxk2q",
                }},
                {"data": {"title": "Game thread", "author": "mod", "score": 10, "num_comments": 500}},
                {"kind": "more"},
            ],
        },
    }

    def test_reddit_listing(self, settings):
        connector = RedditConnector(SentimentAggregator(), settings)
        records = connector.parse_listing("nfl", self.LISTING)

        assert connector.units_found == 2
        assert len(records) == 1
        record = records[0]
        assert record.community == "r/nfl"
        assert record.engagement == 180.0
        assert record.sentiment is Sentiment.BULLISH
        assert record.player == "Patrick Mahomes"
        assert record.timestamp.year == 2024
        assert record.post_id == "t3_1fxk2q"

    @pytest.mark.asyncio
    async def test_reddit_partial_failure_tolerated(self, settings):
        connector = RedditConnector(SentimentAggregator(), settings.model_copy(update={
            "REDDIT_SUBREDDITS": ["nfl", "nba"],
        }))
        responses = iter([self.LISTING, ConnectorError("Reddit", "HTTP 429")])

        async def fake_get_json(url, params=None, headers=None):
            result = next(responses)
            if isinstance(result, Exception):
                raise result
            return result

        connector.get_json = fake_get_json
        records = await connector.fetch()
        assert len(records) == 1

    def test_twitter_requires_token(self, settings):
        assert not TwitterConnector(SentimentAggregator(), settings).is_available()

    def test_twitter_timeline(self, settings):
        connector = TwitterConnector(SentimentAggregator(), settings)
        payload = {"data": [
            {
                "id": "1",
                "text": "Fade Jayson Tatum points tonight, stay away",
                "created_at": "2024-10-06T17:00:00.000Z",
                "public_metrics": {"like_count": 40, "retweet_count": 10, "reply_count": 5, "quote_count": 1},
            },
            {"id": "2", "text": ""},
        ]}

        records = connector.parse_timeline("BettingPros", payload)
        assert connector.units_found == 1
        assert records[0].engagement == 56.0
        assert records[0].sentiment is Sentiment.BEARISH
        assert records[0].community == "@BettingPros"
        assert records[0].timestamp.hour == 17
        assert records[0].post_id == "1"

    def test_twitter_unreadable_metrics_skip_only_that_tweet(self, settings):
        connector = TwitterConnector(SentimentAggregator(), settings)
        payload = {"data": [
            {"id": "1", "text": "Jayson Tatum over points, lock it in",
             "public_metrics": {"like_count": "n/a", "retweet_count": 3}},
            {"id": "2", "text": "Jayson Tatum over points is the play",
             "public_metrics": {"like_count": 12, "retweet_count": 3}},
        ]}

        records = connector.parse_timeline("BettingPros", payload)
        assert connector.units_found == 2
        assert [r.post_id for r in records] == ["2"]
        assert records[0].engagement == 15.0


class TestRegistry:

    def test_duplicate_name_rejected(self, stub_connector):
        registry = ConnectorRegistry([stub_connector("A")])
        with pytest.raises(ValueError):
            registry.register(stub_connector("A"))

    def test_filters_by_kind_and_availability(self, stub_connector):
        registry = ConnectorRegistry([
            stub_connector("A"),
            stub_connector("B", available=False),
            stub_connector("C", kind=ConnectorKind.SENTIMENT),
        ])
        assert [c.name for c in registry.props()] == ["A"]
        assert [c.name for c in registry.sentiment()] == ["C"]
        assert len(registry) == 3

    def test_default_registry_order(self, settings):
        registry = default_registry(settings)
        assert [c.name for c in registry.all()] == [
            "PrizePicks", "Underdog", "DraftKings", "OddsAPI", "Reddit", "Twitter",
        ]
        assert [c.name for c in registry.props()] == ["PrizePicks", "Underdog", "DraftKings"]
        assert [c.name for c in registry.sentiment()] == ["Reddit"]
