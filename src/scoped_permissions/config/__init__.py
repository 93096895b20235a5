"""Configuration module for scoped-permissions."""

from .constants import (
    REGION_SEPARATOR,
    WORLD_SEPARATOR,
    Specificity,
    CacheKeys,
    CacheTTL,
    DatabaseSchemas,
    DefaultValues,
    SubjectKind,
)

from .settings import ResolverSettings, get_settings, is_valid_identifier

from .logging_config import (
    setup_logging,
    get_logger,
    LogVerbosity,
    LogFormat,
    LoggingConfig,
)

__all__ = [
    # Constants
    "REGION_SEPARATOR",
    "WORLD_SEPARATOR",
    "Specificity",
    "CacheKeys",
    "CacheTTL",
    "DatabaseSchemas",
    "DefaultValues",
    "SubjectKind",

    # Settings
    "ResolverSettings",
    "get_settings",
    "is_valid_identifier",

    # Logging
    "setup_logging",
    "get_logger",
    "LogVerbosity",
    "LogFormat",
    "LoggingConfig",
]
