"""Domain exceptions for the content store.

Infrastructure errors (database issues) are kept apart from domain
errors (missing records, uniqueness violations) so callers can decide
which failures are fatal and which are per-item.
"""


class StoreError(Exception):
    """Base exception for all content store errors."""


class ConnectionError(StoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class PersistenceFailure(StoreError):
    """Raised when a read or write against the database fails.

    Wraps the underlying sqlite3 error so callers never depend on the
    driver's exception types.
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize the persistence failure.

        Args:
            operation: Store operation that failed.
            message: Underlying error message.
        """
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class DuplicateLinkError(PersistenceFailure):
    """Raised when a content item with the same link already exists."""

    def __init__(self, link: str) -> None:
        """Initialize the error with the conflicting link.

        Args:
            link: Link that is already stored.
        """
        self.link = link
        super().__init__("create_content", f"link already stored: {link}")


class NotFoundError(StoreError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, identity: str) -> None:
        """Initialize the error.

        Args:
            kind: Record kind (source, content, job).
            identity: Identifier that was looked up.
        """
        self.kind = kind
        self.identity = identity
        super().__init__(f"{kind.capitalize()} not found: {identity}")


class MigrationError(StoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
