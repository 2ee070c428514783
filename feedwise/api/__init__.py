"""Typed request/response boundary for readers and operators."""

from feedwise.api.errors import ApiError, ApiNotFound, ValidationFailure


__all__ = ["ApiError", "ApiNotFound", "ValidationFailure"]
