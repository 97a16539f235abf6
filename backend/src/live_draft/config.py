"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS - comma-separated origins (env var: CORS_ORIGINS)
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database path (DuckDB file, or ":memory:")
    database_path: str = "data/live_draft.duckdb"

    # Draft timing
    default_ban_time_seconds: int = 30
    default_pick_time_seconds: int = 30
    timeout_grace_seconds: float = 2.0
    timer_tick_seconds: float = 1.0
    enable_turn_timer: bool = True

    # Limits
    chat_message_cap: int = 50
    chat_message_max_length: int = 500
    name_max_length: int = 30
    max_planned_games: int = 5

    # "play_all" keeps drafting until planned_games; "majority" stops once
    # a team has won more than half of the planned games
    series_clinch_policy: Literal["play_all", "majority"] = "play_all"

    # Diagnostics (env var: DRAFT_DIAGNOSTICS)
    draft_diagnostics: bool = False
    diagnostics_dir: str = "logs/drafts"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
