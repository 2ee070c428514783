"""Result types returned by the feed downloader."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from feedwise.fetch.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN


class FetchErrorClass(str, Enum):
    """Why a download failed. The value is what logs and metrics show."""

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SSL_ERROR = "SSL_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    UNKNOWN = "UNKNOWN"


class FetchError(BaseModel):
    """A classified download failure."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass
    message: Annotated[str, Field(min_length=1)]
    status_code: int | None = None


class FetchResult(BaseModel):
    """Outcome of downloading one feed document.

    ``status_code`` is 0 when no response arrived. ``body_bytes`` stays
    empty unless the whole body was read within the size limit.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: Annotated[int, Field(ge=0, le=599)]
    final_url: Annotated[str, Field(min_length=1)]
    headers: dict[str, str] = Field(default_factory=dict)
    body_bytes: bytes = b""
    error: FetchError | None = None

    @property
    def is_success(self) -> bool:
        """A 2xx response with no classified error."""
        if self.error is not None:
            return False
        return HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX

    @property
    def body_size(self) -> int:
        return len(self.body_bytes)


class ResponseSizeExceededError(Exception):
    """The streamed body grew past the configured maximum."""
