"""
PropWatch - Core Module
Configuration and error types shared by every service.
"""

from propwatch.core.config import Settings, get_settings, settings
from propwatch.core.exceptions import (
    ConnectorError,
    ConnectorTimeoutError,
    PropWatchError,
    SchedulerBusyError,
    ScrapingSessionError,
    StoreError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",

    # Errors
    "PropWatchError",
    "ConnectorError",
    "ConnectorTimeoutError",
    "StoreError",
    "SchedulerBusyError",
    "ScrapingSessionError",
]
