"""Settings for downloading feed documents."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedwise.fetch.constants import (
    DEFAULT_MAX_RESPONSE_SIZE_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from feedwise.fetch.redact import SENSITIVE_HEADERS


class FetchConfig(BaseModel):
    """How feeds are requested.

    Each feed is requested once per job; there is no retry policy.

    Attributes:
        user_agent: Sent with every request.
        timeout_seconds: Time budget for one feed, connect through last byte.
        max_response_size_bytes: Larger bodies fail the fetch.
        headers: Extra request headers. Credentials are not accepted here.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("headers")
    @classmethod
    def reject_credential_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Keep credentials out of configuration files."""
        leaked = sorted(key for key in v if key.lower() in SENSITIVE_HEADERS)
        if leaked:
            msg = f"Header(s) {', '.join(leaked)} must not be stored in config"
            raise ValueError(msg)
        return v
