"""Error types for feed retrieval."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FeedErrorClass(str, Enum):
    """Classification of feed errors.

    - FETCH: HTTP/network errors during fetch
    - PARSE: The response is not a usable RSS/Atom document
    """

    FETCH = "FETCH"
    PARSE = "PARSE"


class FetchFailure(Exception):
    """A feed could not be retrieved or parsed.

    Always tagged with the source it belongs to so the job can record it.
    """

    def __init__(
        self,
        source_id: str,
        url: str,
        error_class: FeedErrorClass,
        message: str,
    ) -> None:
        """Initialize the fetch failure.

        Args:
            source_id: Identifier of the source that failed.
            url: Feed URL.
            error_class: Classification of the error.
            message: Human-readable reason.
        """
        super().__init__(message)
        self.source_id = source_id
        self.url = url
        self.error_class = error_class
        self.message = message

    def to_job_message(self) -> str:
        """Render the message recorded on a fetch job."""
        return f"Failed to fetch feed {self.url}: {self.message}"


class ErrorRecord(BaseModel):
    """Serializable record of a feed failure."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FeedErrorClass
    message: str
    source_id: str
    url: str

    @classmethod
    def from_exception(cls, exc: FetchFailure) -> "ErrorRecord":
        """Create an error record from a FetchFailure.

        Args:
            exc: The failure to convert.

        Returns:
            ErrorRecord instance.
        """
        return cls(
            error_class=exc.error_class,
            message=exc.message,
            source_id=exc.source_id,
            url=exc.url,
        )


class OpmlParseError(ValueError):
    """Raised when a feed-list document is not well-formed OPML."""
