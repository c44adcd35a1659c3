"""
PropWatch - End-to-End Tests
Complete pipeline workflows with canned source payloads
"""

import time
from unittest.mock import AsyncMock, Mock, patch

import pytest
from click.testing import CliRunner

from propwatch.cli.admin import cli
from propwatch.core.exceptions import ConnectorTimeoutError, ScrapingSessionError
from propwatch.models.domain import Significance
from propwatch.services.connectors import ConnectorRegistry, DraftKingsConnector, RedditConnector
from propwatch.services.data_quality import SourceHealth, get_data_quality_monitor
from propwatch.services.scheduling import create_scraper_scheduler
from propwatch.services.sentiment import SentimentAggregator
from propwatch.services.storage.document_store import Collections

pytestmark = pytest.mark.e2e


def _draftkings_payload(line):
    return {
        "eventGroup": {
            "events": [{
                "name": "KC Chiefs @ LV Raiders",
                "teamName1": "KC Chiefs",
                "displayGroups": [{
                    "markets": [{
                        "name": "Passing Yards",
                        "outcomes": [
                            {"participant": "Patrick Mahomes", "line": line, "oddsAmerican": "-115"},
                        ],
                    }],
                }],
            }],
        },
    }


def _reddit_listing():
    now = int(time.time())
    posts = [
        ("Jayson Tatum over 27.5 points is a lock", "fan1", 150, 40),
        ("Jayson Tatum points, smash the over", "fan2", 90, 10),
        ("Luka Doncic rebounds is a trap, fade it", "fan3", 30, 5),
        ("Anyone watching the game?", "fan4", 500, 300),
    ]
    return {"data": {"children": [
        {"data": {"name": f"t3_e2e{index}", "title": title, "author": author, "score": score,
                  "num_comments": comments, "created_utc": now}}
        for index, (title, author, score, comments) in enumerate(posts)
    ]}}


def _serve(connector, payloads):
    """Replace the connector's HTTP layer with a queue of canned responses."""
    queue = list(payloads)

    async def get_json(url, params=None, headers=None):
        payload = queue.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return payload

    connector.get_json = get_json
    return connector


@pytest.fixture
def quality_monitor():
    monitor = get_data_quality_monitor()
    monitor.reset()
    yield monitor
    monitor.reset()


class TestPipelineWorkflow:
    """Scrape, detect movement, aggregate sentiment, report quality."""

    @pytest.mark.asyncio
    async def test_full_pipeline(self, settings, store, quality_monitor):
        settings = settings.model_copy(update={"REDDIT_SUBREDDITS": ["nba"]})
        aggregator = SentimentAggregator()
        draftkings = _serve(DraftKingsConnector(settings), [
            _draftkings_payload(267.5),
            _draftkings_payload(270.5),
        ])
        reddit = _serve(RedditConnector(aggregator, settings), [_reddit_listing(), _reddit_listing()])
        scheduler = create_scraper_scheduler(settings, store, ConnectorRegistry([draftkings, reddit]))

        # Step 1: First manual run records baseline lines and sentiment
        counts = await scheduler.trigger_immediate()
        assert counts == {"props": 1, "sentiment": 3, "tailing_alerts": 2}
        assert store.count(Collections.LINE_MOVEMENTS) == 0

        # Step 2: Next scheduled prop cycle sees the line move
        session = await scheduler.run_prop_scraping()
        assert session.props_scraped == 1

        movement = store.all(Collections.LINE_MOVEMENTS)[0]
        assert movement["movement"] == 3.0
        assert movement["direction"] == "up"
        assert movement["significance"] == Significance.MAJOR.value
        assert "market_signal" in movement
        assert store.count(Collections.PROP_HISTORY) == 2

        # Step 3: Tailing alerts group posts by player and prop type
        alerts = {a["key"]: a for a in store.all(Collections.TAILING_ALERTS)}
        assert set(alerts) == {"Jayson Tatum_Points", "Luka Doncic_Rebounds"}
        assert alerts["Jayson Tatum_Points"]["mention_count"] == 2
        assert alerts["Jayson Tatum_Points"]["sentiment"] == "bullish"
        assert alerts["Luka Doncic_Rebounds"]["sentiment"] == "bearish"

        # Step 3b: The same hot listing on the next cycle adds no mentions
        await scheduler.run_sentiment_analysis()
        latest = await store.query_latest(Collections.TAILING_ALERTS, {"key": "Jayson Tatum_Points"})
        assert len(store.all(Collections.TAILING_ALERTS)) == 4
        assert latest[0]["mention_count"] == 2

        # Step 4: Quality metrics reflect both connectors
        aggregate = quality_monitor.aggregate
        assert aggregate.active_sources == 2
        assert quality_monitor.get_source("DraftKings").status is SourceHealth.HEALTHY
        assert quality_monitor.get_source("Reddit").extraction_rate == 75.0

        # Step 5: Status and health reflect the finished sessions
        assert scheduler.health()["status"] == "healthy"
        last = scheduler.status()["last_sessions"]
        assert last["props"]["manual"] is False
        assert last["sentiment"]["manual"] is False

        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_source_outage(self, settings, store, quality_monitor):
        draftkings = _serve(DraftKingsConnector(settings), [
            ConnectorTimeoutError("DraftKings", "Timed out after 10.0s"),
        ])
        scheduler = create_scraper_scheduler(settings, store, ConnectorRegistry([draftkings]))

        with pytest.raises(ScrapingSessionError) as exc_info:
            await scheduler.trigger_props()

        assert exc_info.value.session.errors == ["All prop connectors failed: DraftKings: Timed out after 10.0s"]
        assert store.all(Collections.SCRAPING_SESSIONS)[0]["status"] == "failed"
        assert quality_monitor.aggregate.overall_health is SourceHealth.FAILED
        assert any("Complete failure" in issue for issue in quality_monitor.get_diagnostics().critical_issues)

        await scheduler.stop()


class TestCommandLine:

    def test_status_command(self):
        result = CliRunner().invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Prop Interval" in result.output

    def test_quality_command_without_data(self, quality_monitor):
        result = CliRunner().invoke(cli, ["quality", "--no-run"])
        assert result.exit_code == 0
        assert "No connector invocations recorded yet in this process" in result.output

    def test_quality_command_scrapes_first_by_default(self, quality_monitor):
        scheduler = Mock()
        scheduler.trigger_props = AsyncMock(return_value={"props": 0})
        scheduler.stop = AsyncMock()

        with patch("propwatch.services.scheduling.get_scraper_scheduler", return_value=scheduler):
            result = CliRunner().invoke(cli, ["quality"])

        assert result.exit_code == 0
        scheduler.trigger_props.assert_awaited_once()
        scheduler.stop.assert_awaited_once()
