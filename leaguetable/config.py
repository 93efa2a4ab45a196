"""Engine configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class LeagueTableSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Recursion guard for the tiebreak engine. One level per cycle, so it has
    # to exceed the longest cascade of a realistic group (50-75 teams).
    MAX_DEPTH: int = 75

    # Log every tie explanation at INFO when ties() runs
    LOG_TIES: bool = False

    class Config:
        env_prefix = "LEAGUE_TABLE_"
        extra = "ignore"


@lru_cache
def get_settings() -> LeagueTableSettings:
    """Get cached settings instance."""
    return LeagueTableSettings()
