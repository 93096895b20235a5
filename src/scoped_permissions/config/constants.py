"""Constants and enums for scoped-permissions.

This module defines the token separators, specificity levels, cache key
patterns and defaults used throughout the library. Values that map onto
database columns correspond to the tables created by the asyncpg repositories.
"""

from enum import IntEnum
from typing import Final


# Scope token syntax: [region/][world:]permission
REGION_SEPARATOR: Final[str] = "/"
WORLD_SEPARATOR: Final[str] = ":"


class Specificity(IntEnum):
    """How narrowly an entry is scoped. Higher values win the merge."""

    GLOBAL = 0
    WORLD = 1
    REGION = 2
    REGION_WORLD = 3


class CacheKeys:
    """Cache key patterns for Redis."""

    RESOLVED_PERMISSIONS: Final[str] = "{prefix}:resolved:{kind}:{subject}:{world}:{regions}"
    SUBJECT_PATTERN: Final[str] = "{prefix}:resolved:{kind}:{subject}:*"
    KIND_PATTERN: Final[str] = "{prefix}:resolved:{kind}:*"


class CacheTTL:
    """Cache TTL values in seconds."""

    PERMISSIONS_DEFAULT: Final[int] = 600    # 10 minutes


class DatabaseSchemas:
    """Database schema names."""

    DEFAULT: Final[str] = "permissions"


class DefaultValues:
    """Default values for groups and resolution."""

    GROUP_PRIORITY: Final[int] = 0
    DEFAULT_GROUP: Final[str] = "default"
    SET_VALUE: Final[bool] = True


class SubjectKind:
    """Short subject markers used in cache keys and log lines."""

    GROUP: Final[str] = "g"
    PLAYER: Final[str] = "p"

    @staticmethod
    def of(is_group: bool) -> str:
        return SubjectKind.GROUP if is_group else SubjectKind.PLAYER
