"""
Runtime settings for the payments engine.

Values come from environment variables (or a local ``.env`` file) so the CLI
takes only the input path as an argument.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models import DECIMAL_PLACES


class Settings(BaseSettings):
    log_level: str = Field("WARNING", alias="PAYMENTS_LOG_LEVEL")
    num_workers: int = Field(1, ge=1, alias="PAYMENTS_NUM_WORKERS")
    output_precision: int = Field(DECIMAL_PLACES, ge=0, le=28, alias="PAYMENTS_OUTPUT_PRECISION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
