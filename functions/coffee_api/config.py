"""
Configuration and settings for the coffee catalog service.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COFFEES_FILE = Path(__file__).resolve().parent / "data" / "coffees.json"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Document store (MongoDB)
    mongodb_uri: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("MONGODB_URI", "MONGO_URI")
    )
    mongodb_db: str = Field(default="coffee")
    mongodb_collection: str = Field(default="coffees")
    mongodb_timeout_ms: int = Field(default=5000)

    # Relational store (Supabase Postgres, or any SQLAlchemy URL)
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "SUPABASE_DB_URL"),
    )

    # File store
    coffees_file: str = Field(default=str(DEFAULT_COFFEES_FILE))
    catalog_read_only: bool = Field(default=False)

    # Shared secret for PATCH /coffee/{id} and POST /add-coffee
    api_secret: Optional[str] = Field(default=None)

    images_dir: str = Field(default="images")
    seed_on_startup: bool = Field(default=True)
    enforce_unique_names: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    @property
    def backend_name(self) -> str:
        if self.mongodb_uri:
            return "mongo"
        if self.database_url:
            return "sql"
        return "file"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
