"""Configuration loading, schema, and defaults."""

from gitreview.config.loader import ConfigError, load_config
from gitreview.config.schema import GitReviewConfig, LimitsConfig

__all__ = [
    "ConfigError",
    "GitReviewConfig",
    "LimitsConfig",
    "load_config",
]
