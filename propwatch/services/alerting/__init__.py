"""Alerting service module."""

from .alerting_service import (
    Alert,
    AlertChannel,
    AlertingService,
    AlertProvider,
    AlertSeverity,
    LogProvider,
    SlackProvider,
    TelegramProvider,
    WebhookProvider,
    get_alerting_service,
)

__all__ = [
    "Alert",
    "AlertChannel",
    "AlertingService",
    "AlertProvider",
    "AlertSeverity",
    "LogProvider",
    "SlackProvider",
    "TelegramProvider",
    "WebhookProvider",
    "get_alerting_service",
]
