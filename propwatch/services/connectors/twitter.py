"""
Twitter Connector
Recent posts from monitored betting accounts via the X/Twitter API v2.
Unavailable unless TWITTER_BEARER_TOKEN is set.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from propwatch.core.config import Settings
from propwatch.core.exceptions import ConnectorError
from propwatch.models.domain import SentimentRecord, utcnow
from propwatch.services.sentiment.aggregator import SentimentAggregator

from .base_connector import ConnectorKind, HttpConnector

logger = logging.getLogger(__name__)


class TwitterConnector(HttpConnector):
    name = "Twitter"
    kind = ConnectorKind.SENTIMENT

    MAX_RESULTS = 10

    def __init__(self, aggregator: SentimentAggregator, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.aggregator = aggregator

    def is_available(self) -> bool:
        return bool(self.settings.TWITTER_BEARER_TOKEN)

    async def fetch(self) -> List[SentimentRecord]:
        records: List[SentimentRecord] = []
        self.units_found = 0
        failures = []
        url = f"{self.settings.TWITTER_API_BASE_URL.rstrip('/')}/tweets/search/recent"
        auth = {"Authorization": f"Bearer {self.settings.TWITTER_BEARER_TOKEN}"}

        for index, account in enumerate(self.settings.TWITTER_ACCOUNTS):
            if index:
                await self.pause()
            try:
                payload = await self.get_json(
                    url,
                    params={
                        "query": f"from:{account} -is:retweet",
                        "max_results": self.MAX_RESULTS,
                        "tweet.fields": "created_at,public_metrics",
                    },
                    headers=auth,
                )
            except ConnectorError as e:
                logger.warning(f"[{self.name}] @{account} failed: {e.message}")
                failures.append(e)
                continue
            records.extend(self.parse_timeline(account, payload))

        if failures and len(failures) == len(self.settings.TWITTER_ACCOUNTS):
            raise failures[0]

        self.last_fetch_at = utcnow()
        logger.info(f"[{self.name}] {len(records)} betting posts out of {self.units_found}")
        return records

    def parse_timeline(self, account: str, payload: Dict[str, Any]) -> List[SentimentRecord]:
        records = []
        for tweet in (payload or {}).get("data") or []:
            if not isinstance(tweet, dict) or not tweet.get("text"):
                continue
            self.units_found += 1
            metrics = tweet.get("public_metrics") or {}
            try:
                engagement = sum(
                    int(metrics.get(field) or 0)
                    for field in ("like_count", "retweet_count", "reply_count", "quote_count")
                )
            except (AttributeError, TypeError, ValueError):
                logger.debug(f"[{self.name}] Skipping tweet {tweet.get('id')} with unreadable metrics")
                continue
            timestamp = None
            if tweet.get("created_at"):
                try:
                    timestamp = datetime.fromisoformat(tweet["created_at"].replace("Z", "+00:00"))
                except ValueError:
                    logger.debug(f"[{self.name}] Unreadable created_at on tweet {tweet.get('id')}")

            record = self.aggregator.build_record(
                source=self.name,
                community=f"@{account}",
                title=tweet["text"],
                author=account,
                engagement=float(engagement),
                timestamp=timestamp,
                post_id=str(tweet["id"]) if tweet.get("id") else None,
            )
            if record is not None:
                records.append(record)
        return records
