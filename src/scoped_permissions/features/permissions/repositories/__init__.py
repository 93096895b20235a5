"""Permission repositories package.

Store, registry and cache implementations of the permission protocols.
"""

from .memory_store import InMemoryPermissionStore
from .registry import StaticPermissionRegistry
from .schema import create_schema, validate_schema_name
from .entry_repository import AsyncPGEntryRepository
from .group_repository import AsyncPGGroupRepository
from .redis_cache import RedisResolvedPermissionCache

__all__ = [
    "InMemoryPermissionStore",
    "StaticPermissionRegistry",
    "create_schema",
    "validate_schema_name",
    "AsyncPGEntryRepository",
    "AsyncPGGroupRepository",
    "RedisResolvedPermissionCache",
]
