"""
Underdog Fantasy Connector
Pick'em lines from the Underdog board.
"""

from propwatch.models.domain import PropSource

from .base_connector import HtmlCardConnector


class UnderdogConnector(HtmlCardConnector):
    name = "Underdog"
    source = PropSource.UNDERDOG

    CARD_SELECTOR = "[data-testid='pick'], .pick-card, .prop-selection"
    PLAYER_SELECTOR = ".player-name, .athlete-name"
    STAT_SELECTOR = ".stat-type, .pick-type"
    LINE_SELECTOR = ".line, .target"
    TEAM_SELECTOR = ".team, .athlete-team"

    def page_url(self) -> str:
        return self.settings.UNDERDOG_URL
