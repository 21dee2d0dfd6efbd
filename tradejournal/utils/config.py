from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    journal_db_path: str = Field(default="data/tradejournal.db", description="SQLite journal database path")

    host: str = Field(default="0.0.0.0", description="API bind address")
    port: int = Field(default=5000, description="API port")

    account_size: float = Field(default=10000.0, description="Account size used for per-trade risk percentage")

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/tradejournal.log", description="Log file path")
    log_json: bool = Field(default=True, description="Render log events as JSON lines instead of console text")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    global _settings
    _settings = Settings()
    return _settings
