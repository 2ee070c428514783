"""Application settings powered by Pydantic BaseSettings."""

from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UndatedPolicy(str, Enum):
    """What ingestion does with feed entries that carry no timestamp.

    - SKIP: Drop the entry; it has no reliable age.
    - FETCHED_AT: Stamp the entry with the fetch time.
    """

    SKIP = "skip"
    FETCHED_AT = "fetched_at"


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FEEDWISE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    db_path: Path = Path("data/feedwise.sqlite")
    config_path: Path | None = None
    interests_path: Path | None = None
    default_lookback_days: Annotated[int, Field(ge=1, le=3650)] = 7
    recommendation_window_days: Annotated[int, Field(ge=1, le=365)] = 7
    recommendation_limit: Annotated[int, Field(ge=1, le=1000)] = 10
    fetch_timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = 30.0
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = "feedwise/0.1"
    max_response_size_bytes: Annotated[int, Field(ge=1024)] = 10 * 1024 * 1024
    max_workers: Annotated[int, Field(ge=1, le=64)] = 4
    undated_policy: UndatedPolicy = UndatedPolicy.SKIP
    json_logs: bool = True
    ai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    ai_base_url: str = Field(
        default="https://api.perplexity.ai", validation_alias="OPENAI_BASE_URL"
    )
    ai_model: Annotated[str, Field(min_length=1)] = "sonar"
