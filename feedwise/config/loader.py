"""Component configuration loaded from YAML and environment settings."""

import hashlib
from pathlib import Path

import structlog
import yaml
from pydantic import Field, ValidationError

from feedwise.analyzer.analyzer import load_interests
from feedwise.analyzer.config import AnalyzerConfig
from feedwise.data_model.base import StrictBaseModel
from feedwise.fetch.config import FetchConfig
from feedwise.recommend.config import RankerConfig
from feedwise.settings.app import AppSettings


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when a configuration file fails to load or validate."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class FeedwiseConfig(StrictBaseModel):
    """Validated configuration for every component.

    Example YAML::

        fetch:
          timeout_seconds: 15
        analyzer:
          value_keywords: [guide, tutorial]
        ranker:
          default_limit: 20
        interests:
          - distributed systems
          - rust performance
    """

    fetch: FetchConfig = Field(default_factory=FetchConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    ranker: RankerConfig = Field(default_factory=RankerConfig)
    interests: list[str] = Field(default_factory=list)


def load_config(path: Path) -> FeedwiseConfig:
    """Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated configuration.

    Raises:
        ConfigValidationError: If the file is missing, unparseable, or invalid.
    """
    log = logger.bind(component="config", file_path=str(path))

    try:
        content = path.read_bytes()
    except FileNotFoundError as e:
        log.error("config_file_not_found", error=str(e))
        raise ConfigValidationError(
            [{"loc": "file", "msg": str(e), "type": "file_not_found"}], str(path)
        ) from e

    checksum = hashlib.sha256(content).hexdigest()

    try:
        data = yaml.safe_load(content.decode("utf-8")) or {}
        config = FeedwiseConfig.model_validate(data)
    except yaml.YAMLError as e:
        log.error("config_yaml_parse_error", error=str(e))
        raise ConfigValidationError(
            [{"loc": "yaml", "msg": str(e), "type": "yaml_parse_error"}], str(path)
        ) from e
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(loc) for loc in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        log.error(
            "config_validation_failed",
            validation_error_count=len(errors),
            errors=errors,
        )
        raise ConfigValidationError(errors, str(path)) from e

    log.info(
        "config_file_loaded", file_sha256=checksum, interests=len(config.interests)
    )
    return config


def resolve_config(settings: AppSettings) -> FeedwiseConfig:
    """Build the effective configuration.

    A YAML file named by ``settings.config_path`` supplies component
    configuration; without one, fetch and ranking settings come from the
    environment. An interests file, when set, replaces YAML interests.

    Args:
        settings: Environment settings.

    Returns:
        Effective configuration.
    """
    if settings.config_path is not None:
        config = load_config(settings.config_path)
    else:
        config = FeedwiseConfig(
            fetch=FetchConfig(
                user_agent=settings.user_agent,
                timeout_seconds=settings.fetch_timeout_seconds,
                max_response_size_bytes=settings.max_response_size_bytes,
            ),
            ranker=RankerConfig(
                window_days=settings.recommendation_window_days,
                default_limit=settings.recommendation_limit,
            ),
        )

    if settings.interests_path is not None:
        config = config.model_copy(
            update={"interests": load_interests(settings.interests_path)}
        )

    return config
