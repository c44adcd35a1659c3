"""
PropWatch - Line Movement Tracker
=================================
Diffs each new prop observation against the most recent prior observation
of the same (player, stat type, source) key.

Flow per observation:
1. Look up the latest prior observation in ``prop_history``
2. No prior: persist the observation, no movement
3. Prior newer than (or as new as) the observation: drop it
4. Sub-threshold delta: persist the observation, no movement
5. Otherwise classify, persist the movement, alert on major, persist the observation
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from propwatch.core.config import Settings, get_settings
from propwatch.core.exceptions import StoreError
from propwatch.models.domain import LineMovement, ScrapedProp, Significance, utcnow
from propwatch.services.alerting.alerting_service import AlertingService
from propwatch.services.storage.document_store import Collections, DocumentStore

from .market_signals import SignalThresholds, classify_market_signal, is_reverse_line_movement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignificanceBands:
    """Lower bounds (inclusive) of each significance band."""
    minimum: float = 0.5
    moderate: float = 1.5
    major: float = 3.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SignificanceBands":
        settings = settings or get_settings()
        return cls(
            minimum=settings.MOVEMENT_MIN_THRESHOLD,
            moderate=settings.MOVEMENT_MODERATE_THRESHOLD,
            major=settings.MOVEMENT_MAJOR_THRESHOLD,
        )

    def is_significant(self, movement: float) -> bool:
        return abs(movement) >= self.minimum

    def classify(self, movement: float) -> Significance:
        magnitude = abs(movement)
        if magnitude >= self.major:
            return Significance.MAJOR
        if magnitude >= self.moderate:
            return Significance.MODERATE
        return Significance.MINOR


class RecordOutcome(str, Enum):
    RECORDED = "recorded"
    DROPPED = "dropped"


@dataclass
class BatchResult:
    recorded: int = 0
    movements: List[LineMovement] = field(default_factory=list)
    dropped: int = 0
    failed: int = 0

    def to_dict(self):
        return {
            "recorded": self.recorded,
            "movements": len(self.movements),
            "dropped": self.dropped,
            "failed": self.failed,
        }


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class LineMovementTracker:
    """Turns a stream of prop observations into line-movement events."""

    def __init__(
        self,
        store: DocumentStore,
        alerting: Optional[AlertingService] = None,
        bands: Optional[SignificanceBands] = None,
        signal_thresholds: Optional[SignalThresholds] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.alerting = alerting
        self.bands = bands or SignificanceBands.from_settings(settings)
        self.signal_thresholds = signal_thresholds or SignalThresholds.from_settings(settings)

    async def record(self, observation: ScrapedProp) -> Optional[LineMovement]:
        """
        Ingest one observation. Returns the LineMovement when the delta
        against the prior observation is significant, else None.
        Raises StoreError if the store fails.
        """
        _, movement = await self._record(observation)
        return movement

    async def record_batch(self, observations: Iterable[ScrapedProp]) -> BatchResult:
        """Record observations oldest first; one failure does not stop the batch."""
        result = BatchResult()
        for observation in sorted(observations, key=lambda o: _as_utc(o.timestamp)):
            try:
                outcome, movement = await self._record(observation)
            except StoreError as e:
                result.failed += 1
                logger.warning(f"[LineMovement] Failed to record {observation.prop_id}: {e}")
                continue

            if outcome is RecordOutcome.DROPPED:
                result.dropped += 1
                continue
            result.recorded += 1
            if movement is not None:
                result.movements.append(movement)

        logger.info(
            f"[LineMovement] Batch: {result.recorded} recorded, {len(result.movements)} movements, "
            f"{result.dropped} dropped, {result.failed} failed"
        )
        return result

    async def _record(self, observation: ScrapedProp) -> Tuple[RecordOutcome, Optional[LineMovement]]:
        prior = await self._latest_prior(observation)

        if prior is None:
            await self._append(Collections.PROP_HISTORY, observation.to_dict())
            return RecordOutcome.RECORDED, None

        if _as_utc(observation.timestamp) <= _as_utc(prior.timestamp):
            if _as_utc(observation.timestamp) == _as_utc(prior.timestamp) and observation.line == prior.line:
                logger.debug(f"[LineMovement] Duplicate observation dropped: {observation.prop_id}")
            else:
                logger.info(
                    f"[LineMovement] Out-of-order observation dropped: {observation.prop_id} "
                    f"({observation.source.value}) at {observation.timestamp.isoformat()} "
                    f"is not after {prior.timestamp.isoformat()}"
                )
            return RecordOutcome.DROPPED, None

        delta = observation.line - prior.line
        movement = None
        if self.bands.is_significant(delta):
            movement = LineMovement.between(
                prior, observation, self.bands.classify(delta), detected_at=utcnow()
            )
            await self._persist_movement(movement, observation)

        await self._append(Collections.PROP_HISTORY, observation.to_dict())
        return RecordOutcome.RECORDED, movement

    async def _latest_prior(self, observation: ScrapedProp) -> Optional[ScrapedProp]:
        player, stat_type, source = observation.key
        try:
            rows = await self.store.query_latest(
                Collections.PROP_HISTORY,
                {"player": player, "stat_type": stat_type, "source": source},
                1,
            )
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"prop_history lookup failed: {e}") from e

        if not rows:
            return None
        try:
            return ScrapedProp.from_dict(rows[0])
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Unreadable prop_history record: {e}") from e

    async def _persist_movement(self, movement: LineMovement, observation: ScrapedProp) -> None:
        document = movement.to_dict()
        if observation.public_percent is not None:
            document["public_percent"] = observation.public_percent
            document["money_percent"] = observation.money_percent
            document["market_signal"] = classify_market_signal(
                observation.public_percent, observation.money_percent, self.signal_thresholds
            ).value
            document["reverse_line_movement"] = is_reverse_line_movement(
                movement.movement, observation.public_percent, self.signal_thresholds
            )

        await self._append(Collections.LINE_MOVEMENTS, document)
        logger.info(
            f"[LineMovement] {movement.prop_id} ({movement.source.value}) "
            f"{movement.previous_line} -> {movement.current_line} "
            f"[{movement.direction.value}, {movement.significance.value}]"
        )

        if movement.significance is Significance.MAJOR and self.alerting is not None:
            extra = {k: document[k] for k in ("market_signal", "reverse_line_movement") if k in document}
            self.alerting.line_movement_alert(movement, extra)

    async def _append(self, collection: Collections, record: dict) -> dict:
        try:
            return await self.store.append(collection, record)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"{collection.value} write failed: {e}") from e
