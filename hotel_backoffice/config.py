"""Environment-driven configuration for the back-office service."""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection. SQLite unless DB_ENGINE=postgresql."""

    engine: Literal["sqlite3", "postgresql"] = "sqlite3"
    name: str = "db.sqlite3"
    user: str = ""
    password: str = ""
    host: str = ""
    port: Optional[int] = None
    # seconds a SQLite writer waits for the database lock
    timeout: float = 20

    model_config = SettingsConfigDict(env_prefix="DB_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class AppSettings(BaseSettings):
    """Main application settings."""

    secret_key: str = "dev-only-secret-key-change-me"
    debug: bool = False
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "testserver"]
    time_zone: str = "UTC"
    page_size: int = 50

    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


settings = AppSettings()
