"""
Configuration settings for the InnoDB Lock Inspector.

Uses Pydantic Settings to load environment variables for the MySQL connection,
logging, session registry timeouts, and snapshot collection defaults.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(3306, alias="DB_PORT")
    db_user: str = Field("root", alias="DB_USER")
    db_password: str = Field("", alias="DB_PASSWORD")
    db_name: str = Field("performance_schema", alias="DB_NAME")
    db_connect_timeout_s: int = Field(5, alias="DB_CONNECT_TIMEOUT_S")
    db_statement_timeout_ms: int = Field(5_000, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Snapshot defaults
    session_idle_timeout_s: float = Field(300.0, alias="SESSION_IDLE_TIMEOUT_S")
    statement_history_limit: int = Field(5, alias="STATEMENT_HISTORY_LIMIT")
    watch_interval_s: float = Field(2.0, alias="WATCH_INTERVAL_S")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
