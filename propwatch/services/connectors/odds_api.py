"""
The Odds API Connector
======================
Player-prop lines from The Odds API (https://the-odds-api.com).

Each sport costs one events call plus one odds call per event, so the
number of events per cycle is capped. Requires ODDS_API_KEY.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from propwatch.core.config import ODDS_API_MARKET_NAMES, ODDS_API_SPORT_KEYS
from propwatch.core.exceptions import ConnectorError
from propwatch.models.domain import PropSource, ScrapedProp, utcnow

from .base_connector import ConnectorKind, HttpConnector, clean_text, parse_number, parse_odds

logger = logging.getLogger(__name__)


class OddsApiConnector(HttpConnector):
    name = "OddsAPI"
    kind = ConnectorKind.PROPS

    def is_available(self) -> bool:
        return bool(self.settings.ODDS_API_KEY)

    async def fetch(self) -> List[ScrapedProp]:
        props: List[ScrapedProp] = []
        self.units_found = 0
        errors = []

        for sport in self.settings.ODDS_API_SPORTS:
            sport_key = ODDS_API_SPORT_KEYS.get(sport.upper())
            if not sport_key:
                logger.warning(f"[{self.name}] Unknown sport code: {sport}")
                continue
            try:
                props.extend(await self._fetch_sport(sport_key))
            except ConnectorError as e:
                logger.warning(f"[{self.name}] {sport} failed: {e.message}")
                errors.append(e)

        if errors and not props:
            raise errors[0]

        self.last_fetch_at = utcnow()
        logger.info(f"[{self.name}] Parsed {len(props)} props from {self.units_found} events")
        return props

    async def _fetch_sport(self, sport_key: str) -> List[ScrapedProp]:
        base = self.settings.ODDS_API_BASE_URL.rstrip("/")
        events = await self.get_json(
            f"{base}/sports/{sport_key}/events",
            params={"apiKey": self.settings.ODDS_API_KEY},
        )
        events = [e for e in (events or []) if isinstance(e, dict) and e.get("id")]
        events = events[: self.settings.ODDS_API_MAX_EVENTS]
        self.units_found += len(events)

        props = []
        for index, event in enumerate(events):
            if index:
                await self.pause()
            payload = await self.get_json(
                f"{base}/sports/{sport_key}/events/{event['id']}/odds",
                params={
                    "apiKey": self.settings.ODDS_API_KEY,
                    "regions": "us",
                    "markets": ",".join(self.settings.ODDS_API_MARKETS),
                    "oddsFormat": "american",
                },
            )
            props.extend(self.parse_event_odds(payload))
        return props

    def parse_event_odds(self, payload: Dict[str, Any]) -> List[ScrapedProp]:
        """
        One prop per (player, market), taken from the first bookmaker that
        quotes it. The "Over" outcome carries the line and price.
        """
        if not isinstance(payload, dict):
            return []

        home = clean_text(payload.get("home_team"))
        away = clean_text(payload.get("away_team"))
        game_info = f"{away} @ {home}" if home and away else None
        observed_at = utcnow()

        seen: Set[Tuple[str, str]] = set()
        props = []
        for bookmaker in payload.get("bookmakers") or []:
            if not isinstance(bookmaker, dict):
                continue
            for market in bookmaker.get("markets") or []:
                if not isinstance(market, dict):
                    continue
                stat_type = ODDS_API_MARKET_NAMES.get(market.get("key", ""))
                if not stat_type:
                    continue
                for outcome in market.get("outcomes") or []:
                    try:
                        prop = self._parse_outcome(outcome, stat_type, game_info, observed_at)
                    except (TypeError, ValueError) as e:
                        logger.debug(f"[{self.name}] Skipping malformed {stat_type} outcome: {e}")
                        continue
                    if prop is None or (prop.player, stat_type) in seen:
                        continue
                    seen.add((prop.player, stat_type))
                    props.append(prop)
        return props

    def _parse_outcome(self, outcome, stat_type: str, game_info: Optional[str], observed_at) -> Optional[ScrapedProp]:
        if not isinstance(outcome, dict) or clean_text(outcome.get("name")).lower() != "over":
            return None
        player = clean_text(outcome.get("description"))
        if not player or outcome.get("point") is None:
            logger.debug(f"[{self.name}] Skipping outcome without player/point")
            return None
        return ScrapedProp(
            player=player,
            team="",
            stat_type=stat_type,
            line=parse_number(outcome.get("point")),
            source=PropSource.ODDS_API,
            timestamp=observed_at,
            odds=parse_odds(outcome.get("price")),
            game_info=game_info,
        )
