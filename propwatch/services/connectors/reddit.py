"""
Reddit Connector
Betting sentiment from the hot listings of configured subreddits.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from propwatch.core.config import Settings
from propwatch.core.exceptions import ConnectorError
from propwatch.models.domain import SentimentRecord, utcnow
from propwatch.services.sentiment.aggregator import SentimentAggregator

from .base_connector import ConnectorKind, HttpConnector

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"


class RedditConnector(HttpConnector):
    name = "Reddit"
    kind = ConnectorKind.SENTIMENT

    def __init__(self, aggregator: SentimentAggregator, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.aggregator = aggregator
        self.user_agent = self.settings.REDDIT_USER_AGENT

    async def fetch(self) -> List[SentimentRecord]:
        records: List[SentimentRecord] = []
        self.units_found = 0
        failures = []

        for index, subreddit in enumerate(self.settings.REDDIT_SUBREDDITS):
            if index:
                await self.pause()
            try:
                payload = await self.get_json(
                    f"{REDDIT_BASE_URL}/r/{subreddit}/hot.json",
                    params={"limit": self.settings.REDDIT_POST_LIMIT},
                )
            except ConnectorError as e:
                logger.warning(f"[{self.name}] r/{subreddit} failed: {e.message}")
                failures.append(e)
                continue
            records.extend(self.parse_listing(subreddit, payload))

        if failures and len(failures) == len(self.settings.REDDIT_SUBREDDITS):
            raise failures[0]

        self.last_fetch_at = utcnow()
        logger.info(f"[{self.name}] {len(records)} betting posts out of {self.units_found}")
        return records

    def parse_listing(self, subreddit: str, payload: Dict[str, Any]) -> List[SentimentRecord]:
        children = ((payload or {}).get("data") or {}).get("children") or []
        records = []
        for child in children:
            post = (child or {}).get("data") if isinstance(child, dict) else None
            if not isinstance(post, dict):
                continue
            self.units_found += 1
            record = self._parse_post(subreddit, post)
            if record is not None:
                records.append(record)
        return records

    def _parse_post(self, subreddit: str, post: Dict[str, Any]) -> Optional[SentimentRecord]:
        try:
            engagement = float(post.get("score") or 0) + float(post.get("num_comments") or 0)
            created = post.get("created_utc")
            timestamp = datetime.fromtimestamp(float(created), tz=timezone.utc) if created else None
        except (TypeError, ValueError):
            logger.debug(f"[{self.name}] Skipping malformed post in r/{subreddit}")
            return None

        return self.aggregator.build_record(
            source=self.name,
            community=f"r/{subreddit}",
            title=post.get("title") or "",
            author=post.get("author") or "",
            engagement=engagement,
            body=post.get("selftext") or "",
            timestamp=timestamp,
            post_id=post.get("name") or post.get("id"),
        )
