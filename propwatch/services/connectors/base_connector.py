"""
Base Source Connector Module
============================
Common machinery for every data-source connector:
- Polymorphic fetch / availability contract
- Shared aiohttp session with a per-request timeout
- User agent rotation
- Fixed inter-request delay
- Tolerant parsing helpers

A connector either returns records or raises ``ConnectorError``. There is
no retry inside a cycle; the next scheduled cycle is the retry.
"""

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp
from bs4 import BeautifulSoup

from propwatch.core.config import Settings, get_settings
from propwatch.core.exceptions import ConnectorError, ConnectorTimeoutError
from propwatch.models.domain import PropSource, ScrapedProp, utcnow

logger = logging.getLogger(__name__)


class ConnectorKind(str, Enum):
    """What a connector produces."""
    PROPS = "props"
    SENTIMENT = "sentiment"


class SourceConnector(ABC):
    """
    A source of prop observations or sentiment records.

    Subclasses set ``name`` and ``kind`` and implement ``fetch()``.
    ``units_found`` is the number of games/posts seen during the last fetch
    and feeds the extraction-rate metric of the data quality monitor.
    """

    name: str = "connector"
    kind: ConnectorKind = ConnectorKind.PROPS

    def __init__(self):
        self.units_found = 0
        self.last_fetch_at: Optional[datetime] = None

    @abstractmethod
    async def fetch(self) -> List[Any]:
        """Fetch one batch of records, or raise ConnectorError."""

    def is_available(self) -> bool:
        return True

    async def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} kind={self.kind.value}>"


class HttpConnector(SourceConnector):
    """Connector backed by an aiohttp client session."""

    # rotated per request unless a fixed user_agent is given
    USER_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
    ]

    def __init__(self, settings: Optional[Settings] = None, user_agent: Optional[str] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.timeout_seconds = self.settings.REQUEST_TIMEOUT_SECONDS
        self.request_delay = self.settings.INTER_REQUEST_DELAY_SECONDS
        self.user_agent = user_agent
        self.session: Optional[aiohttp.ClientSession] = None
        self.stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    def get_headers(self, accept: str = "application/json") -> Dict[str, str]:
        return {
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
            "User-Agent": self.user_agent or random.choice(self.USER_AGENTS),
        }

    async def pause(self) -> None:
        """Fixed delay between requests to the same source."""
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def _request(self, url: str, accept: str, params=None, headers=None, as_json: bool = True):
        await self.start()
        request_headers = self.get_headers(accept)
        if headers:
            request_headers.update(headers)

        self.stats["total_requests"] += 1
        try:
            async with self.session.get(url, params=params, headers=request_headers) as response:
                if response.status != 200:
                    self.stats["failed_requests"] += 1
                    raise ConnectorError(self.name, f"HTTP {response.status} from {url}")
                if as_json:
                    payload = await response.json(content_type=None)
                else:
                    payload = await response.text()
        except asyncio.TimeoutError as e:
            self.stats["failed_requests"] += 1
            raise ConnectorTimeoutError(
                self.name, f"Timed out after {self.timeout_seconds}s fetching {url}"
            ) from e
        except aiohttp.ClientError as e:
            self.stats["failed_requests"] += 1
            raise ConnectorError(self.name, f"Request to {url} failed: {e}") from e
        except ValueError as e:
            self.stats["failed_requests"] += 1
            raise ConnectorError(self.name, f"Invalid JSON from {url}: {e}") from e

        self.stats["successful_requests"] += 1
        return payload

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._request(url, "application/json", params=params, headers=headers)

    async def get_text(self, url: str, params: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> str:
        return await self._request(
            url,
            "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            params=params,
            headers=headers,
            as_json=False,
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "connector": self.name,
            "units_found": self.units_found,
            "last_fetch_at": self.last_fetch_at.isoformat() if self.last_fetch_at else None,
        }


# Text helpers shared by the HTML and JSON connectors
def clean_text(value: Any) -> str:
    """Collapse whitespace; anything falsy becomes an empty string."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def parse_number(value: Any, default: float = 0.0) -> float:
    """Extract a number from text like ``"24.5 pts"`` or ``"$1,200"``."""
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    cleaned = re.sub(r"[,$%]", "", str(value))
    match = re.search(r"-?\d+\.?\d*", cleaned)
    return float(match.group()) if match else default


def parse_odds(value: Any) -> Optional[int]:
    """Extract American odds from text."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).replace("−", "-")
    match = re.search(r"([+-]?\d+)", text)
    return int(match.group()) if match else None


def select_text(element: BeautifulSoup, selector: str, default: str = "") -> str:
    """Text of the first element matching ``selector``."""
    found = element.select_one(selector)
    return clean_text(found.get_text(" ", strip=True)) if found else default


class HtmlCardConnector(HttpConnector):
    """
    Prop connector for pick'em boards that render one card per prop.

    Subclasses provide the page URL and CSS selector fallbacks; each
    selector string may list alternatives separated by commas.
    """

    kind = ConnectorKind.PROPS
    source: Optional[PropSource] = None
    CARD_SELECTOR = ""
    PLAYER_SELECTOR = ""
    STAT_SELECTOR = ""
    LINE_SELECTOR = ""
    TEAM_SELECTOR = ""
    GAME_SELECTOR = ""

    def page_url(self) -> str:
        raise NotImplementedError

    async def fetch(self) -> List[ScrapedProp]:
        html = await self.get_text(self.page_url())
        props = self.parse_page(html)
        self.last_fetch_at = utcnow()
        logger.info(f"[{self.name}] Parsed {len(props)} props from {self.units_found} cards")
        return props

    def parse_page(self, html: str) -> List[ScrapedProp]:
        soup = BeautifulSoup(html, "html.parser")
        cards = soup.select(self.CARD_SELECTOR)
        self.units_found = len(cards)
        observed_at = utcnow()

        props = []
        for card in cards:
            player = select_text(card, self.PLAYER_SELECTOR)
            stat_type = select_text(card, self.STAT_SELECTOR)
            line_text = select_text(card, self.LINE_SELECTOR)
            if not player or not stat_type or not line_text:
                logger.debug(f"[{self.name}] Skipping incomplete card")
                continue
            line = parse_number(line_text, default=-1.0)
            if line < 0:
                logger.debug(f"[{self.name}] Skipping card with unreadable line {line_text!r}")
                continue
            props.append(ScrapedProp(
                player=player,
                team=select_text(card, self.TEAM_SELECTOR) if self.TEAM_SELECTOR else "",
                stat_type=stat_type,
                line=line,
                source=self.source,
                timestamp=observed_at,
                game_info=(select_text(card, self.GAME_SELECTOR) or None) if self.GAME_SELECTOR else None,
            ))
        return props
