"""
PrizePicks Connector
Pick'em projections from the PrizePicks board.
"""

from propwatch.models.domain import PropSource

from .base_connector import HtmlCardConnector


class PrizePicksConnector(HtmlCardConnector):
    """
    Parses the server-rendered PrizePicks board.

    The board is React-rendered in production; this reads whatever static
    markup the page returns and finds nothing when the cards are client-only.
    """

    name = "PrizePicks"
    source = PropSource.PRIZEPICKS

    CARD_SELECTOR = "[data-testid='pick-card'], .pick-card, .prop-card"
    PLAYER_SELECTOR = "[data-testid='player-name'], .player-name, .name"
    STAT_SELECTOR = "[data-testid='stat-type'], .stat-type, .category"
    LINE_SELECTOR = "[data-testid='line'], .line, .projection"
    TEAM_SELECTOR = "[data-testid='team'], .team"
    GAME_SELECTOR = "[data-testid='game-info'], .game-info, .matchup"

    def page_url(self) -> str:
        return self.settings.PRIZEPICKS_URL
