"""Scheduling service module."""

from .scheduler_service import (
    PROP_JOB_ID,
    SENTIMENT_JOB_ID,
    CategoryState,
    Idle,
    PeakWindow,
    Running,
    ScraperScheduler,
    create_scraper_scheduler,
    get_scraper_scheduler,
)

__all__ = [
    "PROP_JOB_ID",
    "SENTIMENT_JOB_ID",
    "CategoryState",
    "Idle",
    "PeakWindow",
    "Running",
    "ScraperScheduler",
    "create_scraper_scheduler",
    "get_scraper_scheduler",
]
