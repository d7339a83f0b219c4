"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings

from wagerbot.models.constants import (
    DAILY_REWARD,
    MAX_BET,
    MIN_BET,
    ROUTER_SWEEP_SECONDS,
    STARTING_BALANCE,
)


class Settings(BaseSettings):
    """Wagerbot application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Discord
    discord_bot_token: str = ""
    discord_guild_id: str = ""
    discord_enabled: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///wagerbot.db"

    # Environment
    wagerbot_env: str = "development"

    # Economy
    wagerbot_min_bet: int = MIN_BET
    wagerbot_max_bet: int = MAX_BET
    wagerbot_starting_balance: int = STARTING_BALANCE
    wagerbot_daily_reward: int = DAILY_REWARD

    # Component router housekeeping
    wagerbot_router_sweep_seconds: int = ROUTER_SWEEP_SECONDS

    # Logging
    wagerbot_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_bet_bounds(self) -> Settings:
        """Bet bounds must describe a non-empty range of positive stakes."""
        if self.wagerbot_min_bet < 1:
            raise ValueError("WAGERBOT_MIN_BET must be at least 1")
        if self.wagerbot_min_bet > self.wagerbot_max_bet:
            msg = (
                f"WAGERBOT_MIN_BET ({self.wagerbot_min_bet}) must not exceed "
                f"WAGERBOT_MAX_BET ({self.wagerbot_max_bet})"
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _check_sweep_interval(self) -> Settings:
        if self.wagerbot_router_sweep_seconds < 1:
            raise ValueError("WAGERBOT_ROUTER_SWEEP_SECONDS must be at least 1")
        return self
