"""Observability module for structured logging."""

from feedwise.observability.logging import (
    bind_job_context,
    clear_job_context,
    configure_logging,
)


__all__ = [
    "bind_job_context",
    "clear_job_context",
    "configure_logging",
]
