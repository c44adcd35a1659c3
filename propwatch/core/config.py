"""
PropWatch - Configuration
Settings for the scraping scheduler and line-movement/sentiment pipeline
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pipeline configuration settings"""

    # Application Settings
    APP_NAME: str = "PropWatch"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def app_name(self) -> str:
        return self.APP_NAME

    @property
    def environment(self) -> str:
        return self.ENVIRONMENT

    # Line Movement Significance Bands (line points)
    MOVEMENT_MIN_THRESHOLD: float = 0.5
    MOVEMENT_MODERATE_THRESHOLD: float = 1.5
    MOVEMENT_MAJOR_THRESHOLD: float = 3.0

    # Market Split Signals (percent)
    PUBLIC_HEAVY_THRESHOLD: float = 70.0
    MONEY_DIVERGENCE_THRESHOLD: float = 15.0
    SHARP_PUBLIC_MAX: float = 40.0
    SHARP_MONEY_MIN: float = 60.0
    FADE_PUBLIC_MIN: float = 75.0
    RLM_PUBLIC_HIGH: float = 60.0
    RLM_PUBLIC_LOW: float = 40.0

    # Tailing Analysis
    TAIL_OVERTAILED_THRESHOLD: float = 70.0
    TAIL_CONTRARIAN_THRESHOLD: float = 30.0
    TAIL_RATE_INCREMENT: float = 15.0
    TAIL_RATE_CAP: float = 95.0
    TAILING_REBALANCE_ENABLED: bool = True
    TAILING_TOP_N: int = 8
    SENTIMENT_WINDOW_HOURS: int = 24
    SENTIMENT_WINDOW_SIZE: int = 500

    # Synthetic Market Data (development filler)
    SYNTHETIC_DATA_ENABLED: bool = True
    SYNTHETIC_SEED: Optional[int] = None

    # Scheduler Settings
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "America/New_York"
    PEAK_INTERVAL_MINUTES: int = 3
    OFF_PEAK_INTERVAL_MINUTES: int = 15
    SENTIMENT_INTERVAL_MINUTES: int = 10
    # Weekday numbers, Monday=0 ... Sunday=6 (Thu-Mon by default)
    PEAK_DAYS: List[int] = [3, 4, 5, 6, 0]
    PEAK_START_HOUR: int = 13
    PEAK_END_HOUR: int = 23

    # Connector Settings
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    INTER_REQUEST_DELAY_SECONDS: float = 1.0
    INTER_CONNECTOR_DELAY_SECONDS: float = 3.0

    PRIZEPICKS_URL: str = "https://app.prizepicks.com/"
    UNDERDOG_URL: str = "https://underdogfantasy.com/pick-em"
    DRAFTKINGS_URL: str = (
        "https://sportsbook-us-nh.draftkings.com/sites/US-NH-SB/api/v5/"
        "eventgroups/88808/categories/1215/subcategories"
    )

    ODDS_API_KEY: str = ""
    ODDS_API_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_API_SPORTS: List[str] = ["NFL"]
    ODDS_API_MARKETS: List[str] = [
        "player_pass_yds",
        "player_pass_tds",
        "player_rush_yds",
        "player_receptions",
        "player_reception_yds",
    ]
    ODDS_API_MAX_EVENTS: int = 5

    REDDIT_USER_AGENT: str = "PropWatch-SentimentCollector/1.0"
    REDDIT_SUBREDDITS: List[str] = [
        "sportsbook",
        "sportsbetting",
        "dfsports",
        "nfl",
        "nba",
        "baseball",
        "fantasyfootball",
    ]
    REDDIT_POST_LIMIT: int = 25

    TWITTER_BEARER_TOKEN: str = ""
    TWITTER_API_BASE_URL: str = "https://api.twitter.com/2"
    TWITTER_ACCOUNTS: List[str] = [
        "ActionNetworkHQ",
        "BettingPros",
        "VSiNLive",
        "OddsChecker",
        "TheGameDayBets",
    ]

    # Data Quality Monitoring
    QUALITY_DEGRADED_RATE: float = 50.0
    QUALITY_CRITICAL_RATE: float = 30.0
    QUALITY_HEALTHY_RATIO: float = 0.7
    QUALITY_SLOW_RESPONSE_MS: float = 1000.0
    QUALITY_SLOW_AVERAGE_MS: float = 800.0
    QUALITY_LOW_COVERAGE_PROPS: int = 10

    # Alerting Settings
    ALERT_COOLDOWN_SECONDS: int = 300
    ALERT_HISTORY_SIZE: int = 1000
    SLACK_WEBHOOK_URL: str = ""
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    @field_validator("PEAK_DAYS")
    @classmethod
    def validate_peak_days(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("PEAK_DAYS must contain weekday numbers between 0 (Mon) and 6 (Sun)")
        return v

    @field_validator("PEAK_START_HOUR", "PEAK_END_HOUR")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("Peak hours must be between 0 and 23")
        return v

    @field_validator("PEAK_INTERVAL_MINUTES", "OFF_PEAK_INTERVAL_MINUTES", "SENTIMENT_INTERVAL_MINUTES")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Scheduler intervals must be positive")
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Threshold bands must be ordered"""
        if self.MOVEMENT_MIN_THRESHOLD <= 0:
            raise ValueError("MOVEMENT_MIN_THRESHOLD must be positive")
        if not (
            self.MOVEMENT_MIN_THRESHOLD
            <= self.MOVEMENT_MODERATE_THRESHOLD
            <= self.MOVEMENT_MAJOR_THRESHOLD
        ):
            raise ValueError("Movement thresholds must satisfy min <= moderate <= major")
        if self.TAIL_CONTRARIAN_THRESHOLD >= self.TAIL_OVERTAILED_THRESHOLD:
            raise ValueError("TAIL_CONTRARIAN_THRESHOLD must be below TAIL_OVERTAILED_THRESHOLD")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Singleton instance
settings = get_settings()


# Sport code mapping for TheOddsAPI
ODDS_API_SPORT_KEYS = {
    "NFL": "americanfootball_nfl",
    "NCAAF": "americanfootball_ncaaf",
    "NBA": "basketball_nba",
    "MLB": "baseball_mlb",
    "NHL": "icehockey_nhl",
}

# Odds API market key -> display stat type
ODDS_API_MARKET_NAMES = {
    "player_pass_tds": "Passing TDs",
    "player_pass_yds": "Passing Yards",
    "player_rush_yds": "Rushing Yards",
    "player_receptions": "Receptions",
    "player_reception_yds": "Receiving Yards",
    "player_points": "Points",
    "player_rebounds": "Rebounds",
    "player_assists": "Assists",
    "batter_hits": "Hits",
    "pitcher_strikeouts": "Strikeouts",
}
