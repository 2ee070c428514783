"""Structured errors returned by the reader API."""

from typing import Any, ClassVar

from pydantic import ValidationError

from feedwise.store.errors import NotFoundError


class ApiError(Exception):
    """Base class for errors surfaced to API callers.

    Subclasses fix the status code and error type; ``to_dict`` renders
    the response body.
    """

    status_code: ClassVar[int] = 500
    error_type: ClassVar[str] = "internal_error"

    def __init__(
        self, message: str, details: list[dict[str, Any]] | None = None
    ) -> None:
        """Initialize the API error.

        Args:
            message: Human-readable error message.
            details: Optional structured details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a response body."""
        body: dict[str, Any] = {"error": self.error_type, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailure(ApiError):
    """Malformed request input; nothing was persisted."""

    status_code: ClassVar[int] = 400
    error_type: ClassVar[str] = "validation_failed"

    def __init__(
        self,
        field: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize the validation failure.

        Args:
            field: First offending field.
            message: Human-readable error message.
            details: Per-field errors.
        """
        super().__init__(f"{field}: {message}", details)
        self.field = field

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ValidationFailure":
        """Convert a pydantic ValidationError.

        Args:
            error: Validation error raised while parsing a request.

        Returns:
            ValidationFailure naming the first offending field.
        """
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "body",
                "message": err["msg"],
                "type": err["type"],
            }
            for err in error.errors()
        ]
        first = details[0] if details else {"field": "body", "message": str(error)}
        return cls(first["field"], first["message"], details)


class ApiNotFound(ApiError):
    """A referenced job, content item, or source does not exist."""

    status_code: ClassVar[int] = 404
    error_type: ClassVar[str] = "not_found"

    def __init__(self, kind: str, identity: str) -> None:
        """Initialize the error.

        Args:
            kind: Record kind.
            identity: Identifier that was looked up.
        """
        super().__init__(f"{kind.capitalize()} not found: {identity}")
        self.kind = kind
        self.identity = identity

    @classmethod
    def from_store(cls, error: NotFoundError) -> "ApiNotFound":
        """Wrap a store-level NotFoundError."""
        return cls(error.kind, error.identity)
