# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application settings loaded from the environment."""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    """Runtime configuration, read from ``DARE_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DARE_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "DARE Program Tracker"
    database_url: str = "sqlite:///./dare.db"
    sql_echo: bool = False
    log_level: LogLevel = "INFO"
    # Header set by the authenticating reverse proxy, carrying the username
    auth_user_header: str = "X-Remote-User"
    cors_origins: list[str] = ["http://localhost:5173"]

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value


settings = Settings()
