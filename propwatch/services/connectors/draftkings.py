"""
DraftKings Connector
Player-prop markets from the DraftKings sportsbook event-group JSON feed.
"""

import logging
from typing import Any, Dict, List

from propwatch.models.domain import PropSource, PropStatus, ScrapedProp, utcnow

from .base_connector import ConnectorKind, HttpConnector, clean_text, parse_number, parse_odds

logger = logging.getLogger(__name__)


class DraftKingsConnector(HttpConnector):
    name = "DraftKings"
    kind = ConnectorKind.PROPS

    async def fetch(self) -> List[ScrapedProp]:
        payload = await self.get_json(self.settings.DRAFTKINGS_URL)
        props = self.parse_payload(payload)
        self.last_fetch_at = utcnow()
        logger.info(f"[{self.name}] Parsed {len(props)} props from {self.units_found} events")
        return props

    def parse_payload(self, payload: Dict[str, Any]) -> List[ScrapedProp]:
        """
        Walk eventGroup -> events -> displayGroups -> markets -> outcomes.

        Outcomes without a participant or line are not player props and are
        skipped, as is anything that is not shaped like the feed expects.
        """
        events = ((payload or {}).get("eventGroup") or {}).get("events") or []
        self.units_found = len(events)
        observed_at = utcnow()

        props = []
        for event in events:
            if not isinstance(event, dict):
                continue
            team = clean_text(event.get("teamName1"))
            game_info = clean_text(event.get("name")) or None
            for group in event.get("displayGroups") or []:
                if not isinstance(group, dict):
                    continue
                for market in group.get("markets") or []:
                    if not isinstance(market, dict):
                        continue
                    stat_type = clean_text(market.get("name"))
                    for outcome in market.get("outcomes") or []:
                        try:
                            prop = self._parse_outcome(outcome, stat_type, team, game_info, observed_at)
                        except (TypeError, ValueError) as e:
                            logger.debug(f"[{self.name}] Skipping malformed outcome in {stat_type}: {e}")
                            continue
                        if prop is not None:
                            props.append(prop)
        return props

    def _parse_outcome(self, outcome, stat_type, team, game_info, observed_at):
        if not isinstance(outcome, dict):
            return None
        player = clean_text(outcome.get("participant"))
        if not player or outcome.get("line") is None or not stat_type:
            logger.debug(f"[{self.name}] Skipping outcome without participant/line")
            return None

        odds = parse_odds(outcome.get("oddsAmerican"))
        public = outcome.get("percentOfSpread")
        return ScrapedProp(
            player=player,
            team=team,
            stat_type=stat_type,
            line=parse_number(outcome.get("line")),
            source=PropSource.DRAFTKINGS,
            status=PropStatus.ACTIVE if odds is not None else PropStatus.SUSPENDED,
            timestamp=observed_at,
            odds=odds,
            public_percent=parse_number(public) if public is not None else None,
            game_info=game_info,
        )
