"""Source connectors for prop lines and social sentiment."""

from .base_connector import (
    ConnectorKind,
    HtmlCardConnector,
    HttpConnector,
    SourceConnector,
    clean_text,
    parse_number,
    parse_odds,
    select_text,
)
from .draftkings import DraftKingsConnector
from .odds_api import OddsApiConnector
from .prizepicks import PrizePicksConnector
from .reddit import RedditConnector
from .registry import ConnectorRegistry, default_registry
from .twitter import TwitterConnector
from .underdog import UnderdogConnector

__all__ = [
    "ConnectorKind",
    "ConnectorRegistry",
    "DraftKingsConnector",
    "HtmlCardConnector",
    "HttpConnector",
    "OddsApiConnector",
    "PrizePicksConnector",
    "RedditConnector",
    "SourceConnector",
    "TwitterConnector",
    "UnderdogConnector",
    "clean_text",
    "default_registry",
    "parse_number",
    "parse_odds",
    "select_text",
]
