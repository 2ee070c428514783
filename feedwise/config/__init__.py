"""Component configuration loading."""

from feedwise.config.loader import (
    ConfigValidationError,
    FeedwiseConfig,
    load_config,
    resolve_config,
)


__all__ = ["ConfigValidationError", "FeedwiseConfig", "load_config", "resolve_config"]
