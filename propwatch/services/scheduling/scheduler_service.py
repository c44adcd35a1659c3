"""
PropWatch - Scraper Scheduler
Peak-aware prop scraping and sentiment analysis cycles on APScheduler
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from propwatch.core.config import Settings, get_settings
from propwatch.core.exceptions import (
    ConnectorError,
    PropWatchError,
    SchedulerBusyError,
    ScrapingSessionError,
)
from propwatch.models.domain import (
    ScrapedProp,
    ScrapingSession,
    SentimentRecord,
    SessionKind,
    SessionStatus,
    utcnow,
)
from propwatch.services.alerting.alerting_service import AlertingService, get_alerting_service
from propwatch.services.calendar.sports_calendar import PHASE_RULES, active_leagues_message, season_info
from propwatch.services.connectors.base_connector import SourceConnector
from propwatch.services.connectors.registry import ConnectorRegistry, default_registry
from propwatch.services.data_quality.quality_monitor import DataQualityMonitor, get_data_quality_monitor
from propwatch.services.line_movement.tracker import LineMovementTracker
from propwatch.services.sentiment.aggregator import SentimentAggregator
from propwatch.services.storage.document_store import Collections, DocumentStore, InMemoryDocumentStore
from propwatch.services.synthetic.generator import (
    EngagementBandConsensus,
    MarketSplitSource,
    SyntheticMarketData,
)
from propwatch.services.tailing.analyzer import TailingAnalyzer

logger = logging.getLogger(__name__)

PROP_JOB_ID = "prop_scraping"
SENTIMENT_JOB_ID = "sentiment_analysis"


@dataclass(frozen=True)
class Idle:
    def to_dict(self) -> Dict[str, Any]:
        return {"state": "idle"}


@dataclass(frozen=True)
class Running:
    session_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"state": "running", "session_id": self.session_id}


CategoryState = Union[Idle, Running]


@dataclass(frozen=True)
class PeakWindow:
    """Days (Monday=0) and inclusive hour range with heavy line activity"""
    days: FrozenSet[int]
    start_hour: int
    end_hour: int

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PeakWindow":
        settings = settings or get_settings()
        return cls(frozenset(settings.PEAK_DAYS), settings.PEAK_START_HOUR, settings.PEAK_END_HOUR)

    def is_peak(self, moment: datetime) -> bool:
        return moment.weekday() in self.days and self.start_hour <= moment.hour <= self.end_hour


def _new_session_id(kind: SessionKind) -> str:
    return f"{kind.value}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _unique_posts(records: List[SentimentRecord]) -> List[SentimentRecord]:
    """First occurrence of each (source, post id); records without an id are kept."""
    seen = set()
    unique = []
    for record in records:
        identity = record.identity
        if identity is not None:
            if identity in seen:
                continue
            seen.add(identity)
        unique.append(record)
    return unique


class ScraperScheduler:
    """
    Drives the two recurring work categories.

    Each category has one lock and one state value. A timer firing while
    its category is running is skipped; a manual trigger is rejected with
    SchedulerBusyError instead.
    """

    def __init__(
        self,
        registry: ConnectorRegistry,
        tracker: LineMovementTracker,
        analyzer: TailingAnalyzer,
        store: DocumentStore,
        quality_monitor: Optional[DataQualityMonitor] = None,
        alerting: Optional[AlertingService] = None,
        market_data: Optional[MarketSplitSource] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self.registry = registry
        self.tracker = tracker
        self.analyzer = analyzer
        self.store = store
        self.quality_monitor = quality_monitor or get_data_quality_monitor()
        self.alerting = alerting
        self.market_data = market_data

        self.enabled = settings.SCHEDULER_ENABLED
        self.timezone = ZoneInfo(settings.SCHEDULER_TIMEZONE)
        self.peak_window = PeakWindow.from_settings(settings)
        self.peak_interval = settings.PEAK_INTERVAL_MINUTES
        self.off_peak_interval = settings.OFF_PEAK_INTERVAL_MINUTES
        self.sentiment_interval = settings.SENTIMENT_INTERVAL_MINUTES
        self.inter_connector_delay = settings.INTER_CONNECTOR_DELAY_SECONDS
        self.sentiment_window_hours = settings.SENTIMENT_WINDOW_HOURS
        self.sentiment_window_size = settings.SENTIMENT_WINDOW_SIZE
        self._clock = clock or (lambda: datetime.now(self.timezone))

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._locks = {kind: asyncio.Lock() for kind in SessionKind}
        self._states: Dict[SessionKind, CategoryState] = {kind: Idle() for kind in SessionKind}
        self._current: Dict[SessionKind, ScrapingSession] = {}
        self._last: Dict[SessionKind, ScrapingSession] = {}
        self._current_prop_interval = self.prop_interval_minutes()

    # ------------------------------------------------------------------
    # Intervals
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._clock()

    def is_peak_time(self, moment: Optional[datetime] = None) -> bool:
        return self.peak_window.is_peak(moment or self.now())

    def prop_interval_minutes(self, moment: Optional[datetime] = None) -> int:
        return self.peak_interval if self.is_peak_time(moment) else self.off_peak_interval

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self):
        """Install both interval jobs and start the scheduler"""
        if not self.enabled:
            logger.info("[Scheduler] Scheduler is disabled")
            return
        if self.is_running:
            return

        self._scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
        )
        self._install_jobs()
        self._scheduler.start()
        logger.info(
            f"[Scheduler] Started: props every {self._current_prop_interval}m "
            f"({'peak' if self.is_peak_time() else 'off-peak'}), "
            f"sentiment every {self.sentiment_interval}m"
        )

    async def stop(self):
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("[Scheduler] Stopped")
        self._scheduler = None
        await self.registry.close()
        if self.alerting is not None:
            await self.alerting.drain()

    def _install_jobs(self) -> None:
        self._current_prop_interval = self.prop_interval_minutes()
        self._scheduler.add_job(
            self._prop_job,
            trigger=IntervalTrigger(minutes=self._current_prop_interval, timezone=self.timezone),
            id=PROP_JOB_ID,
            name="Prop line scraping",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._sentiment_job,
            trigger=IntervalTrigger(minutes=self.sentiment_interval, timezone=self.timezone),
            id=SENTIMENT_JOB_ID,
            name="Sentiment analysis",
            replace_existing=True,
        )

    def update_frequency(self) -> Dict[str, Any]:
        """Re-derive intervals and reinstall both jobs"""
        if self.is_running:
            for job_id in (PROP_JOB_ID, SENTIMENT_JOB_ID):
                if self._scheduler.get_job(job_id) is not None:
                    self._scheduler.remove_job(job_id)
            self._install_jobs()
        else:
            self._current_prop_interval = self.prop_interval_minutes()

        logger.info(f"[Scheduler] Frequency updated: props every {self._current_prop_interval}m")
        return {
            "prop_interval_minutes": self._current_prop_interval,
            "sentiment_interval_minutes": self.sentiment_interval,
            "is_peak_time": self.is_peak_time(),
        }

    def _reschedule_props_if_needed(self) -> None:
        interval = self.prop_interval_minutes()
        if interval == self._current_prop_interval:
            return
        self._current_prop_interval = interval
        if self.is_running and self._scheduler.get_job(PROP_JOB_ID) is not None:
            self._scheduler.reschedule_job(
                PROP_JOB_ID, trigger=IntervalTrigger(minutes=interval, timezone=self.timezone)
            )
            logger.info(f"[Scheduler] Prop interval changed to {interval}m")

    # ------------------------------------------------------------------
    # Timer entry points
    # ------------------------------------------------------------------

    async def _prop_job(self):
        try:
            await self.run_prop_scraping()
        except Exception as e:
            logger.error(f"[Scheduler] Error in prop scraping job: {e}", exc_info=True)

    async def _sentiment_job(self):
        try:
            await self.run_sentiment_analysis()
        except Exception as e:
            logger.error(f"[Scheduler] Error in sentiment analysis job: {e}", exc_info=True)

    async def run_prop_scraping(self) -> Optional[ScrapingSession]:
        """One scheduled prop cycle; skipped while a prop session is running"""
        session = await self._run_if_idle(SessionKind.PROPS, self._prop_cycle)
        self._reschedule_props_if_needed()
        return session

    async def run_sentiment_analysis(self) -> Optional[ScrapingSession]:
        """One scheduled sentiment cycle; skipped while a sentiment session is running"""
        return await self._run_if_idle(SessionKind.SENTIMENT, self._sentiment_cycle)

    async def _run_if_idle(self, kind: SessionKind, cycle) -> Optional[ScrapingSession]:
        lock = self._locks[kind]
        if lock.locked():
            logger.info(f"[Scheduler] {kind.value} session already running, skipping tick")
            return None
        async with lock:
            return await self._run_session(kind, cycle, manual=False)

    # ------------------------------------------------------------------
    # Manual triggers
    # ------------------------------------------------------------------

    def _ensure_idle(self, kinds: Iterable[SessionKind]) -> None:
        for kind in kinds:
            state = self._states[kind]
            if self._locks[kind].locked() or isinstance(state, Running):
                raise SchedulerBusyError(kind.value, getattr(state, "session_id", None))

    async def trigger_immediate(self) -> Dict[str, int]:
        """
        Run a prop cycle and a sentiment cycle concurrently, now.

        Raises SchedulerBusyError (no session created) if either category is
        running, and ScrapingSessionError if a session ends up failed.
        """
        kinds = (SessionKind.PROPS, SessionKind.SENTIMENT)
        self._ensure_idle(kinds)
        async with self._locks[SessionKind.PROPS], self._locks[SessionKind.SENTIMENT]:
            props_session, sentiment_session = await asyncio.gather(
                self._run_session(SessionKind.PROPS, self._prop_cycle, manual=True),
                self._run_session(SessionKind.SENTIMENT, self._sentiment_cycle, manual=True),
            )
        self._raise_if_failed(props_session, sentiment_session)
        return {
            "props": props_session.props_scraped,
            "sentiment": sentiment_session.sentiment_points_collected,
            "tailing_alerts": sentiment_session.tailing_alerts_generated,
        }

    async def trigger_props(self) -> Dict[str, int]:
        self._ensure_idle([SessionKind.PROPS])
        async with self._locks[SessionKind.PROPS]:
            session = await self._run_session(SessionKind.PROPS, self._prop_cycle, manual=True)
        self._raise_if_failed(session)
        return {"props": session.props_scraped}

    async def trigger_sentiment(self) -> Dict[str, int]:
        self._ensure_idle([SessionKind.SENTIMENT])
        async with self._locks[SessionKind.SENTIMENT]:
            session = await self._run_session(SessionKind.SENTIMENT, self._sentiment_cycle, manual=True)
        self._raise_if_failed(session)
        return {
            "sentiment": session.sentiment_points_collected,
            "tailing_alerts": session.tailing_alerts_generated,
        }

    @staticmethod
    def _raise_if_failed(*sessions: ScrapingSession) -> None:
        for session in sessions:
            if session.status is SessionStatus.FAILED:
                raise ScrapingSessionError(session)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def _run_session(
        self,
        kind: SessionKind,
        cycle: Callable[[ScrapingSession], Awaitable[None]],
        manual: bool,
    ) -> ScrapingSession:
        """Caller must hold the category lock"""
        session = ScrapingSession(session_id=_new_session_id(kind), kind=kind, manual=manual)
        self._states[kind] = Running(session.session_id)
        self._current[kind] = session
        logger.info(f"[Scheduler] Starting {kind.value} session {session.session_id}")

        try:
            await cycle(session)
            session.complete()
        except Exception as e:
            logger.error(f"[Scheduler] {kind.value} session {session.session_id} failed: {e}", exc_info=True)
            session.fail(str(e))
        finally:
            self._states[kind] = Idle()
            self._current.pop(kind, None)
            self._last[kind] = session

        await self._persist_session(session)

        if session.status is SessionStatus.FAILED:
            if self.alerting is not None:
                self.alerting.session_failure_alert(session.session_id, kind.value, session.errors[-1])
        else:
            logger.info(
                f"[Scheduler] Completed {kind.value} session {session.session_id} in "
                f"{session.duration_ms:.0f}ms: {session.props_scraped} props, "
                f"{session.sentiment_points_collected} sentiment, "
                f"{session.tailing_alerts_generated} tailing alerts"
            )
        return session

    async def _persist_session(self, session: ScrapingSession) -> None:
        collection = (
            Collections.SENTIMENT_SESSIONS if session.kind is SessionKind.SENTIMENT
            else Collections.SCRAPING_SESSIONS
        )
        try:
            await self.store.append(collection, session.to_dict())
        except Exception as e:
            logger.error(f"[Scheduler] Failed to persist session {session.session_id}: {e}")

    async def _invoke(self, connector: SourceConnector) -> Tuple[List[Any], Optional[str]]:
        """Fetch from one connector and report the invocation to the quality monitor"""
        started = time.perf_counter()
        try:
            records = await connector.fetch()
        except ConnectorError as e:
            error = e.message
            logger.warning(f"[{connector.name}] Fetch failed: {error}")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.error(f"[{connector.name}] Unexpected fetch error: {error}", exc_info=True)
        else:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.quality_monitor.record(connector.name, connector.units_found, len(records), elapsed_ms)
            return records, None

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.quality_monitor.record(connector.name, connector.units_found, 0, elapsed_ms, [error])
        return [], error

    async def _prop_cycle(self, session: ScrapingSession) -> None:
        connectors = self.registry.props()
        if not connectors:
            raise PropWatchError("No prop connectors available")

        props: List[ScrapedProp] = []
        failures = []
        for index, connector in enumerate(connectors):
            if index and self.inter_connector_delay > 0:
                await asyncio.sleep(self.inter_connector_delay)
            records, error = await self._invoke(connector)
            if error is not None:
                failures.append(f"{connector.name}: {error}")
                continue
            session.sources.append(connector.name)
            props.extend(records)

        if len(failures) == len(connectors):
            raise PropWatchError("All prop connectors failed: " + "; ".join(failures))
        session.errors.extend(failures)

        if self.market_data is not None:
            props = [self.market_data.fill_splits(p) for p in props]

        result = await self.tracker.record_batch(props)
        session.props_scraped = len(props)
        logger.info(
            f"[Scheduler] Prop cycle: {len(props)} props from {len(session.sources)} sources, "
            f"{len(result.movements)} line movements"
        )

    async def _sentiment_cycle(self, session: ScrapingSession) -> None:
        connectors = self.registry.sentiment()
        if not connectors:
            raise PropWatchError("No sentiment connectors available")

        results = await asyncio.gather(*(self._invoke(c) for c in connectors))

        records: List[SentimentRecord] = []
        failures = []
        for connector, (items, error) in zip(connectors, results):
            if error is not None:
                failures.append(f"{connector.name}: {error}")
                continue
            session.sources.append(connector.name)
            records.extend(items)

        if len(failures) == len(connectors):
            raise PropWatchError("All sentiment connectors failed: " + "; ".join(failures))
        session.errors.extend(failures)

        for record in records:
            await self._append_isolated(Collections.SENTIMENT_DATA, record.to_dict())
        session.sentiment_points_collected = len(records)

        window = await self._sentiment_window(records)
        alerts = self.analyzer.aggregate(window)
        for alert in alerts:
            await self._append_isolated(Collections.TAILING_ALERTS, alert.to_dict())
        session.tailing_alerts_generated = len(alerts)

    async def _append_isolated(self, collection: Collections, document: Dict[str, Any]) -> None:
        try:
            await self.store.append(collection, document)
        except Exception as e:
            logger.warning(f"[Scheduler] Failed to persist {collection.value} record: {e}")

    async def _sentiment_window(self, fresh: List[SentimentRecord]) -> List[SentimentRecord]:
        """
        Recent sentiment from the store; the fresh batch if the store is unreadable.

        Listings return the same posts cycle after cycle, so each platform
        post counts once, as its newest observation.
        """
        try:
            rows = await self.store.query_latest(Collections.SENTIMENT_DATA, None, self.sentiment_window_size)
        except Exception as e:
            logger.warning(f"[Scheduler] Sentiment window read failed, using current batch: {e}")
            return _unique_posts(fresh)

        cutoff = utcnow().timestamp() - self.sentiment_window_hours * 3600
        window = []
        for row in rows:
            try:
                record = SentimentRecord.from_dict(row)
            except (KeyError, TypeError, ValueError):
                logger.debug(f"[Scheduler] Skipping unreadable sentiment record {row.get('id')}")
                continue
            if record.timestamp.timestamp() >= cutoff:
                window.append(record)
        return _unique_posts(window)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _next_run(self, job_id: str) -> Optional[str]:
        if not self.is_running:
            return None
        job = self._scheduler.get_job(job_id)
        if job is None or job.next_run_time is None:
            return None
        return job.next_run_time.isoformat()

    def status(self, today: Optional[date] = None) -> Dict[str, Any]:
        now = self.now()
        today = today or now.date()
        return {
            "is_running": self.is_running,
            "categories": {kind.value: state.to_dict() for kind, state in self._states.items()},
            "is_peak_time": self.is_peak_time(now),
            "prop_interval_minutes": self._current_prop_interval,
            "sentiment_interval_minutes": self.sentiment_interval,
            "next_prop_scrape": self._next_run(PROP_JOB_ID),
            "next_sentiment_scrape": self._next_run(SENTIMENT_JOB_ID),
            "current_sessions": {kind.value: s.to_dict() for kind, s in self._current.items()},
            "last_sessions": {kind.value: s.to_dict() for kind, s in self._last.items()},
            "season": {
                "message": active_leagues_message(today),
                "leagues": [season_info(sport, today).to_dict() for sport in PHASE_RULES],
            },
        }

    def health(self) -> Dict[str, Any]:
        failed = [s for s in self._last.values() if s.status is SessionStatus.FAILED]
        return {
            "status": "unhealthy" if failed else "healthy",
            "is_running": self.is_running,
            "last_sessions": {kind.value: s.status.value for kind, s in self._last.items()},
            "errors": [s.errors[-1] for s in failed if s.errors],
            "data_quality": self.quality_monitor.aggregate.overall_health.value,
        }


def create_scraper_scheduler(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    registry: Optional[ConnectorRegistry] = None,
) -> ScraperScheduler:
    """Wire the scheduler with the reference collaborators"""
    settings = settings or get_settings()
    store = store or InMemoryDocumentStore()
    alerting = get_alerting_service()

    synthetic = SyntheticMarketData(settings.SYNTHETIC_SEED) if settings.SYNTHETIC_DATA_ENABLED else None
    consensus = synthetic or EngagementBandConsensus()

    return ScraperScheduler(
        registry=registry or default_registry(settings, SentimentAggregator()),
        tracker=LineMovementTracker(store, alerting, settings=settings),
        analyzer=TailingAnalyzer(consensus, settings=settings),
        store=store,
        quality_monitor=get_data_quality_monitor(),
        alerting=alerting,
        market_data=synthetic,
        settings=settings,
    )


_scraper_scheduler: Optional[ScraperScheduler] = None


def get_scraper_scheduler() -> ScraperScheduler:
    """
    Dependency-style accessor for the scraper scheduler.
    Keeps imports stable and avoids circular imports.
    """
    global _scraper_scheduler
    if _scraper_scheduler is None:
        _scraper_scheduler = create_scraper_scheduler()
    return _scraper_scheduler
