from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from models import TableConfig

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = ["http://localhost:5173"]


class Settings(BaseSettings):
    origin: str = Field(default="", alias="ORIGIN")
    trick_delay_seconds: float = Field(default=2.0, ge=0, alias="TRICK_DELAY_SECONDS")
    game_over_score: int = Field(default=100, gt=0, alias="GAME_OVER_SCORE")
    jack_of_diamonds: bool = Field(default=False, alias="JACK_OF_DIAMONDS")
    auto_start: bool = Field(default=False, alias="AUTO_START")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    def allowed_origins(self) -> list[str]:
        """
        Splits ORIGIN on commas, dropping blanks.
        Example: "https://hearts.example.com, https://www.hearts.example.com"
        """
        extra = [x.strip() for x in self.origin.split(",") if x.strip()]
        return DEFAULT_ORIGINS + [x for x in extra if x not in DEFAULT_ORIGINS]

    def table_config(self) -> TableConfig:
        return TableConfig(
            trick_delay_seconds=self.trick_delay_seconds,
            game_over_score=self.game_over_score,
            jack_of_diamonds=self.jack_of_diamonds,
            auto_start=self.auto_start,
        )

    def log_status(self) -> None:
        env_name = os.getenv("RENDER_SERVICE_NAME") or os.getenv("ENV", "unknown")
        logger.info(
            "Table settings: trick_delay=%ss, game_over_score=%s, jack_of_diamonds=%s, auto_start=%s, env=%s",
            self.trick_delay_seconds,
            self.game_over_score,
            self.jack_of_diamonds,
            self.auto_start,
            env_name,
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.log_status()
    return settings
