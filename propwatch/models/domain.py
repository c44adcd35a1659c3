"""
PropWatch - Domain Models
Observations, derived movements, sentiment records and session records
exchanged between the connectors, analyzers and the scheduler.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class PropSource(str, Enum):
    """Sportsbook / pick'em markets a prop line can come from"""
    PRIZEPICKS = "PrizePicks"
    UNDERDOG = "Underdog"
    DRAFTKINGS = "DraftKings"
    FANDUEL = "FanDuel"
    ODDS_API = "OddsAPI"


class PropStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"

    @classmethod
    def from_movement(cls, movement: float) -> "Direction":
        if movement > 0:
            return cls.UP
        if movement < 0:
            return cls.DOWN
        return cls.FLAT


class Significance(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class RiskLevel(str, Enum):
    OVERTAILED = "overtailed"
    CONSENSUS = "consensus"
    CONTRARIAN = "contrarian"


class MarketSignal(str, Enum):
    """Public vs. money split labels shown on prop cards"""
    PUBLIC_TRAP = "public_trap"
    SHARP_PLAY = "sharp_play"
    FADE_ALERT = "fade_alert"
    NEUTRAL = "neutral"


class SessionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionKind(str, Enum):
    PROPS = "props"
    SENTIMENT = "sentiment"


@dataclass(frozen=True)
class ScrapedProp:
    """A single observed prop line at a point in time."""
    player: str
    team: str
    stat_type: str
    line: float
    source: PropSource
    status: PropStatus = PropStatus.ACTIVE
    timestamp: datetime = field(default_factory=utcnow)
    odds: Optional[int] = None
    public_percent: Optional[float] = None
    money_percent: Optional[float] = None
    game_info: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.player, self.stat_type, self.source.value)

    @property
    def prop_id(self) -> str:
        return f"{self.player}-{self.stat_type}"

    def with_splits(self, public_percent: float, money_percent: float) -> "ScrapedProp":
        return replace(self, public_percent=public_percent, money_percent=money_percent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player,
            "team": self.team,
            "stat_type": self.stat_type,
            "line": self.line,
            "source": self.source.value,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "odds": self.odds,
            "public_percent": self.public_percent,
            "money_percent": self.money_percent,
            "game_info": self.game_info,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapedProp":
        return cls(
            player=data["player"],
            team=data.get("team", ""),
            stat_type=data["stat_type"],
            line=float(data["line"]),
            source=PropSource(data["source"]),
            status=PropStatus(data.get("status", PropStatus.ACTIVE.value)),
            timestamp=_parse_timestamp(data["timestamp"]),
            odds=data.get("odds"),
            public_percent=data.get("public_percent"),
            money_percent=data.get("money_percent"),
            game_info=data.get("game_info"),
        )


@dataclass(frozen=True)
class LineMovement:
    """Delta between two consecutive observations of the same prop key."""
    prop_id: str
    player: str
    stat_type: str
    previous_line: float
    current_line: float
    movement: float
    direction: Direction
    source: PropSource
    significance: Significance
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def between(
        cls,
        prior: ScrapedProp,
        current: ScrapedProp,
        significance: Significance,
        detected_at: Optional[datetime] = None,
    ) -> "LineMovement":
        movement = current.line - prior.line
        return cls(
            prop_id=current.prop_id,
            player=current.player,
            stat_type=current.stat_type,
            previous_line=prior.line,
            current_line=current.line,
            movement=movement,
            direction=Direction.from_movement(movement),
            source=current.source,
            significance=significance,
            timestamp=detected_at or utcnow(),
        )

    @property
    def magnitude(self) -> float:
        return abs(self.movement)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prop_id": self.prop_id,
            "player": self.player,
            "stat_type": self.stat_type,
            "previous_line": self.previous_line,
            "current_line": self.current_line,
            "movement": self.movement,
            "direction": self.direction.value,
            "source": self.source.value,
            "significance": self.significance.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SentimentRecord:
    """One classified social post."""
    source: str
    community: str
    content: str
    author: str
    sentiment: Sentiment
    engagement: float
    confidence: int
    timestamp: datetime = field(default_factory=utcnow)
    player: Optional[str] = None
    prop_type: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    post_id: Optional[str] = None

    @property
    def identity(self) -> Optional[Tuple[str, str]]:
        """(source, post id), or None when the platform gave no id."""
        return (self.source, self.post_id) if self.post_id else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "post_id": self.post_id,
            "community": self.community,
            "content": self.content,
            "author": self.author,
            "player": self.player,
            "prop_type": self.prop_type,
            "sentiment": self.sentiment.value,
            "engagement": self.engagement,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentimentRecord":
        return cls(
            source=data.get("source", ""),
            community=data.get("community", ""),
            content=data.get("content", ""),
            author=data.get("author", ""),
            sentiment=Sentiment(data.get("sentiment", Sentiment.NEUTRAL.value)),
            engagement=float(data.get("engagement", 0)),
            confidence=int(data.get("confidence", 50)),
            timestamp=_parse_timestamp(data["timestamp"]),
            player=data.get("player"),
            prop_type=data.get("prop_type"),
            tags=frozenset(data.get("tags", [])),
            post_id=data.get("post_id"),
        )


@dataclass
class TailingSentiment:
    """Public-consensus aggregate for one (player, prop type) key."""
    key: str
    player: str
    prop_type: str
    tail_rate: float
    mention_count: int = 1
    influencer_count: int = 1
    sentiment: Sentiment = Sentiment.NEUTRAL
    risk_level: RiskLevel = RiskLevel.CONSENSUS
    sources: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "player": self.player,
            "prop_type": self.prop_type,
            "tail_rate": round(self.tail_rate, 2),
            "mention_count": self.mention_count,
            "influencer_count": self.influencer_count,
            "sentiment": self.sentiment.value,
            "risk_level": self.risk_level.value,
            "sources": list(self.sources),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ScrapingSession:
    """Record of one scheduler-triggered run."""
    session_id: str
    kind: SessionKind
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    props_scraped: int = 0
    sentiment_points_collected: int = 0
    tailing_alerts_generated: int = 0
    sources: List[str] = field(default_factory=list)
    status: SessionStatus = SessionStatus.RUNNING
    errors: List[str] = field(default_factory=list)
    manual: bool = False

    def complete(self) -> None:
        self._finish(SessionStatus.COMPLETED)

    def fail(self, message: str) -> None:
        self._finish(SessionStatus.FAILED)
        self.errors.append(message)

    def _finish(self, status: SessionStatus) -> None:
        if self.status is not SessionStatus.RUNNING:
            raise ValueError(
                f"Session {self.session_id} already {self.status.value}, cannot move to {status.value}"
            )
        self.status = status
        self.end_time = utcnow()

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "manual": self.manual,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "timestamp": self.start_time.isoformat(),
            "props_scraped": self.props_scraped,
            "sentiment_points_collected": self.sentiment_points_collected,
            "tailing_alerts_generated": self.tailing_alerts_generated,
            "sources": list(self.sources),
            "status": self.status.value,
            "errors": list(self.errors),
        }
