"""Domain-specific error types for the LLM module."""


class LlmApiError(Exception):
    """Chat completion call failure.

    Attributes:
        status_code: HTTP status code from the API response, 0 when the
            request never produced one.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
