"""
PropWatch - Exceptions
Error taxonomy for connectors, persistence and scraping sessions.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from propwatch.models.domain import ScrapingSession


class PropWatchError(Exception):
    """Base class for all pipeline errors."""


class ConnectorError(PropWatchError):
    """A connector failed to produce any records for this cycle."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class ConnectorTimeoutError(ConnectorError):
    """An outbound request exceeded the configured timeout."""


class StoreError(PropWatchError):
    """A durable-store read or write failed."""


class SchedulerBusyError(PropWatchError):
    """A manual trigger was rejected because a session is already running."""

    def __init__(self, category: str, session_id: Optional[str] = None):
        detail = f" ({session_id})" if session_id else ""
        super().__init__(f"A {category} scraping session is already running{detail}")
        self.category = category
        self.session_id = session_id


class ScrapingSessionError(PropWatchError):
    """A manually triggered session terminated in the failed state."""

    def __init__(self, session: "ScrapingSession"):
        message = session.errors[-1] if session.errors else "Unknown error"
        super().__init__(message)
        self.session = session
