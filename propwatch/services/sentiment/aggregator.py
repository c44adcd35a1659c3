"""
Sentiment Aggregator
====================
Keyword-count sentiment classification for social betting content.

No model is involved: the label is a deterministic function of which
bullish and bearish markers appear in the text, so the same text always
yields the same label and confidence.

Player-name extraction is best-effort and pluggable. The default
``CapitalizedBigramExtractor`` looks for adjacent capitalized words;
``GazetteerExtractor`` matches against a known-name list instead.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional, Sequence

from propwatch.models.domain import Sentiment, SentimentRecord, utcnow

logger = logging.getLogger(__name__)


BULLISH_KEYWORDS = ("lock", "easy", "smash", "confident", "love", "free money", "hammer")
BEARISH_KEYWORDS = ("fade", "avoid", "trap", "stay away", "risky", "skip", "dangerous")

BETTING_KEYWORDS = (
    "bet", "prop", "line", "odds", "over", "under", "points", "yards",
    "assists", "rebounds", "strikeouts", "sportsbook", "parlay", "pick",
    "lock", "hammer", "fade", "tail", "value", "sharp", "public", "trap",
)

TAG_KEYWORDS = (
    ("over", "over"),
    ("under", "under"),
    ("parlay", "parlay"),
    ("lock", "lock"),
    ("fade", "fade"),
    ("sharp", "sharp-money"),
    ("tail", "tail"),
)

PROP_TYPES = (
    "passing yards", "rushing yards", "receiving yards", "receptions",
    "points", "rebounds", "assists", "hits", "strikeouts", "home runs",
    "touchdowns", "field goals", "sacks", "interceptions",
)

GENERIC_PROP_TYPE = "Props"

CONFIDENCE_PER_KEYWORD = 20
MAX_CONFIDENCE = 90
TIED_CONFIDENCE = 50


@dataclass(frozen=True)
class SentimentScore:
    sentiment: Sentiment
    confidence: int


class PlayerExtractor(ABC):
    """Best-effort player-name extraction; must never raise."""

    @abstractmethod
    def extract_all(self, text: str) -> List[str]:
        """All candidate player names in order of appearance."""

    def extract(self, text: str) -> Optional[str]:
        names = self.extract_all(text)
        return names[0] if names else None


class CapitalizedBigramExtractor(PlayerExtractor):
    """Adjacent capitalized word pairs, minus known non-player bigrams."""

    NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")

    EXCLUDED_NAMES = frozenset({
        "New York", "Los Angeles", "Las Vegas", "New England", "San Francisco",
        "Green Bay", "Kansas City", "Tampa Bay", "New Orleans", "San Diego",
        "San Antonio", "Golden State", "Oklahoma City", "Salt Lake",
        "Super Bowl", "World Series", "Monday Night", "Sunday Night", "Thursday Night",
    })

    # Words that start a capitalized pair but are never part of a name
    EXCLUDED_WORDS = frozenset({
        "The", "This", "That", "Over", "Under", "Lock", "Fade", "Sharp", "Public",
        "Props", "Prop", "Points", "Yards", "Parlay", "Pick", "Picks", "Bet", "Odds",
    })

    def __init__(self, excluded_names: Iterable[str] = ()):
        self.excluded_names = self.EXCLUDED_NAMES | frozenset(excluded_names)

    def extract_all(self, text: str) -> List[str]:
        if not text:
            return []
        names = []
        for match in self.NAME_PATTERN.finditer(text):
            name = match.group()
            first, last = name.split(" ")
            if name in self.excluded_names:
                continue
            if first in self.EXCLUDED_WORDS or last in self.EXCLUDED_WORDS:
                continue
            names.append(name)
        return names


class GazetteerExtractor(PlayerExtractor):
    """Matches against a list of known player names (case-insensitive)."""

    def __init__(self, names: Iterable[str]):
        self._patterns = [
            (name, re.compile(r"\b" + re.escape(name) + r"\b", re.IGNORECASE))
            for name in names if name
        ]

    def extract_all(self, text: str) -> List[str]:
        if not text:
            return []
        found = []
        for name, pattern in self._patterns:
            match = pattern.search(text)
            if match:
                found.append((match.start(), name))
        return [name for _, name in sorted(found)]


def _count_keywords(lower_text: str, keywords: Sequence[str]) -> int:
    return sum(1 for keyword in keywords if keyword in lower_text)


class SentimentAggregator:
    """Classifies betting-related text and extracts structured tags."""

    def __init__(
        self,
        player_extractor: Optional[PlayerExtractor] = None,
        bullish_keywords: Sequence[str] = BULLISH_KEYWORDS,
        bearish_keywords: Sequence[str] = BEARISH_KEYWORDS,
    ):
        self.player_extractor = player_extractor or CapitalizedBigramExtractor()
        self.bullish_keywords = tuple(bullish_keywords)
        self.bearish_keywords = tuple(bearish_keywords)

    def classify(self, text: str) -> SentimentScore:
        lower_text = (text or "").lower()
        bullish = _count_keywords(lower_text, self.bullish_keywords)
        bearish = _count_keywords(lower_text, self.bearish_keywords)

        if bullish > bearish:
            return SentimentScore(Sentiment.BULLISH, min(bullish * CONFIDENCE_PER_KEYWORD, MAX_CONFIDENCE))
        if bearish > bullish:
            return SentimentScore(Sentiment.BEARISH, min(bearish * CONFIDENCE_PER_KEYWORD, MAX_CONFIDENCE))
        return SentimentScore(Sentiment.NEUTRAL, TIED_CONFIDENCE)

    @staticmethod
    def is_betting_related(text: str) -> bool:
        lower_text = (text or "").lower()
        return any(keyword in lower_text for keyword in BETTING_KEYWORDS)

    @staticmethod
    def extract_tags(text: str) -> FrozenSet[str]:
        lower_text = (text or "").lower()
        return frozenset(tag for keyword, tag in TAG_KEYWORDS if keyword in lower_text)

    def extract_player(self, text: str) -> Optional[str]:
        try:
            return self.player_extractor.extract(text)
        except Exception as e:  # pluggable, may be third-party
            logger.warning(f"Player extraction failed: {e}")
            return None

    @staticmethod
    def extract_prop_type(text: str) -> Optional[str]:
        lower_text = (text or "").lower()
        for prop_type in PROP_TYPES:
            if prop_type in lower_text:
                return prop_type.title()
        if "over" in lower_text or "under" in lower_text:
            return GENERIC_PROP_TYPE
        return None

    def build_record(
        self,
        source: str,
        community: str,
        title: str,
        author: str,
        engagement: float,
        body: str = "",
        timestamp: Optional[datetime] = None,
        post_id: Optional[str] = None,
    ) -> Optional[SentimentRecord]:
        """
        Classify one post. Returns None when the post is not about betting.

        ``title`` is kept as the record content; classification and tag
        extraction run over the title and body together.
        """
        text = f"{title or ''} {body or ''}".strip()
        if not self.is_betting_related(text):
            return None

        score = self.classify(text)
        return SentimentRecord(
            source=source,
            community=community,
            content=(title or "").strip(),
            author=author or "",
            sentiment=score.sentiment,
            engagement=engagement,
            confidence=score.confidence,
            timestamp=timestamp or utcnow(),
            player=self.extract_player(text),
            prop_type=self.extract_prop_type(text),
            tags=self.extract_tags(text),
            post_id=post_id,
        )
