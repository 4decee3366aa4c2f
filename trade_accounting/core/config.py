"""
Configuration - read from environment variables.
"""

import os
from dataclasses import dataclass
from functools import lru_cache


def get_engine_url(database_type: str | None = None) -> str:
    """Database URL from DATABASE_TYPE and the matching connection variables."""
    db_type = database_type or os.getenv("DATABASE_TYPE", "sqlite")

    if db_type == "sqlite":
        db_path = os.getenv("DATABASE_PATH", "./data/trade_accounting.db")
        return f"sqlite:///{db_path}"
    elif db_type == "postgresql":
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        dbname = os.getenv("DB_NAME", "trade_accounting")
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        return f"postgresql://{user}:{password}@{host}:{port}/{dbname}"
    else:
        raise ValueError(f"Unsupported database type: {db_type}")


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_format: str = "console"  # console | json
    default_currency: str = "EUR"
    default_remittance_format: str = "cuaderno_58"
    supervisor_audio_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=get_engine_url(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "console").lower(),
        default_currency=os.getenv("DEFAULT_CURRENCY", "EUR"),
        default_remittance_format=os.getenv("DEFAULT_REMITTANCE_FORMAT", "cuaderno_58"),
        supervisor_audio_enabled=os.getenv("SUPERVISOR_AUDIO", "true").lower() in ("1", "true", "yes"),
    )
