"""Application settings loaded from environment variables.

Values can be set through ``POWERPRO_*`` environment variables or a ``.env``
file in the working directory.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"


class Settings(BaseSettings):
    """PowerPro configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POWERPRO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding the SQLite database",
    )
    database_name: str = Field(
        default="powerpro.db",
        description="SQLite database file name inside data_dir",
    )
    default_rounding_increment: Decimal = Field(
        default=Decimal("5"),
        gt=0,
        description="Rounding increment used when a program does not set one",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for the CLI and web server",
    )
    host: str = Field(default="127.0.0.1", description="Web server bind host")
    port: int = Field(default=8000, description="Web server bind port")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
