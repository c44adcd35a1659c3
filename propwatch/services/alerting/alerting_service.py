"""
PropWatch - Alerting Service
Line-movement and session-failure notifications to Slack, Telegram and the log.

Pipeline code only calls ``emit()``, which schedules delivery on the running
loop and returns at once. Channel errors are logged by the delivery task and
never reach the caller.
"""

import asyncio
import html
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Set

import httpx

from propwatch.core.config import Settings, get_settings
from propwatch.models.domain import LineMovement, utcnow

logger = logging.getLogger(__name__)


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertChannel(str, Enum):
    LOG = "log"
    TELEGRAM = "telegram"
    SLACK = "slack"


@dataclass
class Alert:
    """One notification. Alerts sharing a ``dedup_key`` share a cooldown."""
    title: str
    message: str
    severity: AlertSeverity
    source: str
    dedup_key: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.dedup_key:
            self.dedup_key = f"{self.source}:{self.title}"

    @property
    def alert_id(self) -> str:
        return f"{self.source}-{int(self.created_at.timestamp() * 1000)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "source": self.source,
            "dedup_key": self.dedup_key,
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }


class AlertProvider(ABC):
    channel: AlertChannel

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def send(self, alert: Alert) -> bool:
        """True when the channel accepted the alert."""


class LogProvider(AlertProvider):
    """Writes alerts to the application log; always configured."""

    channel = AlertChannel.LOG

    _LEVELS = {
        AlertSeverity.INFO: logging.INFO,
        AlertSeverity.WARNING: logging.WARNING,
        AlertSeverity.ERROR: logging.ERROR,
        AlertSeverity.CRITICAL: logging.CRITICAL,
    }

    def is_configured(self) -> bool:
        return True

    async def send(self, alert: Alert) -> bool:
        logger.log(
            self._LEVELS.get(alert.severity, logging.INFO),
            f"[Alert:{alert.source}] {alert.title} - {alert.message} {alert.metadata or ''}".rstrip()
        )
        return True


class WebhookProvider(AlertProvider):
    """Posts a rendered JSON body to an HTTP endpoint; HTTP 200 means delivered."""

    timeout_seconds = 10.0

    @abstractmethod
    def endpoint(self) -> str:
        ...

    @abstractmethod
    def render(self, alert: Alert) -> Dict[str, Any]:
        ...

    async def send(self, alert: Alert) -> bool:
        if not self.is_configured():
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.endpoint(), json=self.render(alert))
        except httpx.HTTPError as e:
            logger.error(f"[Alerting] {self.channel.value} delivery error: {e}")
            return False

        if response.status_code != 200:
            logger.error(
                f"[Alerting] {self.channel.value} rejected {alert.alert_id}: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
            return False
        logger.info(f"[Alerting] {self.channel.value} delivered {alert.alert_id}")
        return True


class SlackProvider(WebhookProvider):
    """Slack incoming webhook, Block Kit layout."""

    channel = AlertChannel.SLACK

    EMOJI = {
        AlertSeverity.INFO: ":information_source:",
        AlertSeverity.WARNING: ":chart_with_upwards_trend:",
        AlertSeverity.ERROR: ":x:",
        AlertSeverity.CRITICAL: ":rotating_light:",
    }

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def endpoint(self) -> str:
        return self.webhook_url

    def render(self, alert: Alert) -> Dict[str, Any]:
        blocks: List[Dict[str, Any]] = [
            {"type": "header", "text": {"type": "plain_text", "text": alert.title[:150]}},
            {"type": "section", "text": {
                "type": "mrkdwn",
                "text": f"{self.EMOJI.get(alert.severity, '')} {alert.message}".strip(),
            }},
        ]
        if alert.metadata:
            details = "\n".join(f"*{key}:* {value}" for key, value in alert.metadata.items())
            blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": details}})
        blocks.append({"type": "context", "elements": [{
            "type": "mrkdwn",
            "text": f"{alert.severity.value.upper()} | {alert.source} | "
                    f"{alert.created_at.strftime('%Y-%m-%d %H:%M UTC')}",
        }]})
        return {"text": alert.title, "blocks": blocks}


class TelegramProvider(WebhookProvider):
    """Telegram Bot API ``sendMessage`` with HTML formatting."""

    channel = AlertChannel.TELEGRAM
    API_BASE = "https://api.telegram.org"

    def __init__(self, bot_token: str, chat_id: str):
        self.bot_token = bot_token
        self.chat_id = chat_id

    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def endpoint(self) -> str:
        return f"{self.API_BASE}/bot{self.bot_token}/sendMessage"

    def render(self, alert: Alert) -> Dict[str, Any]:
        lines = [f"<b>{html.escape(alert.title)}</b>", html.escape(alert.message)]
        lines.extend(
            f"{html.escape(str(key))}: <code>{html.escape(str(value))}</code>"
            for key, value in alert.metadata.items()
        )
        return {
            "chat_id": self.chat_id,
            "text": "\n".join(lines),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }


class AlertingService:
    """Fans alerts out to every configured channel, once per cooldown per dedup key."""

    def __init__(self, settings: Optional[Settings] = None, providers: Optional[Iterable[AlertProvider]] = None):
        settings = settings or get_settings()
        if providers is None:
            providers = (
                LogProvider(),
                TelegramProvider(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID),
                SlackProvider(settings.SLACK_WEBHOOK_URL),
            )
        self.providers: Dict[AlertChannel, AlertProvider] = {p.channel: p for p in providers}
        self.cooldown_seconds = settings.ALERT_COOLDOWN_SECONDS

        self._last_sent: Dict[str, float] = {}
        self._history: Deque[Alert] = deque(maxlen=settings.ALERT_HISTORY_SIZE)
        self._pending: Set[asyncio.Task] = set()

    def get_configured_channels(self) -> List[AlertChannel]:
        return [channel for channel, provider in self.providers.items() if provider.is_configured()]

    def emit(self, alert: Alert) -> None:
        """Schedule delivery of ``alert`` and return immediately."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"[Alerting] No running event loop, alert dropped: {alert.title}")
            return

        task = loop.create_task(self.deliver(alert))
        self._pending.add(task)
        task.add_done_callback(self._on_delivered)

    def _on_delivered(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[Alerting] Delivery task failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for in-flight deliveries, used on shutdown."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _cooling_down(self, key: str) -> bool:
        sent = self._last_sent.get(key)
        return sent is not None and time.monotonic() - sent < self.cooldown_seconds

    async def deliver(
        self,
        alert: Alert,
        channels: Optional[List[AlertChannel]] = None,
        respect_cooldown: bool = True,
    ) -> Dict[str, bool]:
        """
        Send to ``channels`` (every configured channel by default).

        Returns channel -> delivered. An empty dict means the alert was
        suppressed by its cooldown.
        """
        if respect_cooldown:
            if self._cooling_down(alert.dedup_key):
                logger.debug(f"[Alerting] Cooldown active, skipped: {alert.dedup_key}")
                return {}
            # claimed before any await so concurrent deliveries see it
            self._last_sent[alert.dedup_key] = time.monotonic()

        wanted = self.get_configured_channels() if channels is None else channels
        targets = [
            self.providers[channel] for channel in wanted
            if channel in self.providers and self.providers[channel].is_configured()
        ]
        outcomes = await asyncio.gather(*(p.send(alert) for p in targets), return_exceptions=True)

        results: Dict[str, bool] = {}
        for provider, outcome in zip(targets, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"[Alerting] {provider.channel.value} raised: {outcome}")
                outcome = False
            results[provider.channel.value] = bool(outcome)

        self._history.append(alert)
        return results

    def get_alert_history(
        self,
        limit: int = 100,
        severity: Optional[AlertSeverity] = None,
        source: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        matching = [
            alert for alert in self._history
            if (severity is None or alert.severity is severity)
            and (source is None or alert.source == source)
        ]
        return [alert.to_dict() for alert in matching[-limit:]]

    def line_movement_alert(self, movement: LineMovement, extra: Optional[Dict[str, Any]] = None) -> None:
        arrow = {"up": "↑", "down": "↓"}.get(movement.direction.value, "→")
        metadata = {
            "prop_id": movement.prop_id,
            "source": movement.source.value,
            "direction": movement.direction.value,
            "magnitude": movement.magnitude,
            "previous_line": movement.previous_line,
            "current_line": movement.current_line,
        }
        metadata.update(extra or {})
        self.emit(Alert(
            title=f"Major line movement: {movement.prop_id} ({movement.source.value})",
            message=f"{movement.previous_line} {arrow} {movement.current_line} ({movement.movement:+.1f})",
            severity=AlertSeverity.WARNING,
            source="line_movement",
            dedup_key=(
                f"movement:{movement.source.value}:{movement.prop_id}:"
                f"{movement.previous_line}->{movement.current_line}"
            ),
            metadata=metadata,
        ))

    def session_failure_alert(self, session_id: str, kind: str, error: str) -> None:
        self.emit(Alert(
            title=f"Scraping session failed: {kind}",
            message=error,
            severity=AlertSeverity.ERROR,
            source="scheduler",
            dedup_key=f"session:{kind}",
            metadata={"session_id": session_id},
        ))


_alerting_service: Optional[AlertingService] = None


def get_alerting_service() -> AlertingService:
    """Process-wide alerting service, created on first use."""
    global _alerting_service
    if _alerting_service is None:
        _alerting_service = AlertingService()
    return _alerting_service
