"""Permissions feature for scoped-permissions.

Feature-First layout for scoped permission resolution:
- entities/: Scope keys, entries, groups, results and store protocols
- services/: Group graph, resolvers, child expansion and orchestration
- repositories/: In-memory, PostgreSQL and Redis implementations
"""

# Core permission entities and protocols
from .entities import (
    ScopeKey, Entry, Group, Membership,
    Provenance, ResolverResult, MutationResult,
    EntryStore, GroupGraphSource, MembershipStore, GroupStore,
    TransactionStrategy, PermissionRegistry, ResolvedPermissionCache, PlayerRefresher,
    parse_scope_key, format_scope_key,
)

# Resolution and orchestration
from .services import (
    GroupGraph, MembershipResolver, PermissionResolver, PermissionService,
    expand_children, merge_entries,
)

# Concrete implementations
from .repositories import (
    InMemoryPermissionStore, StaticPermissionRegistry,
    AsyncPGEntryRepository, AsyncPGGroupRepository,
    RedisResolvedPermissionCache, create_schema,
)

from .factory import create_permission_service, create_in_memory_permission_service

__all__ = [
    # Entities
    "ScopeKey",
    "Entry",
    "Group",
    "Membership",
    "Provenance",
    "ResolverResult",
    "MutationResult",
    "parse_scope_key",
    "format_scope_key",

    # Protocols
    "EntryStore",
    "GroupGraphSource",
    "MembershipStore",
    "GroupStore",
    "TransactionStrategy",
    "PermissionRegistry",
    "ResolvedPermissionCache",
    "PlayerRefresher",

    # Services
    "GroupGraph",
    "MembershipResolver",
    "PermissionResolver",
    "PermissionService",
    "expand_children",
    "merge_entries",

    # Repository Implementations
    "InMemoryPermissionStore",
    "StaticPermissionRegistry",
    "AsyncPGEntryRepository",
    "AsyncPGGroupRepository",
    "RedisResolvedPermissionCache",
    "create_schema",

    # Factories
    "create_permission_service",
    "create_in_memory_permission_service",
]
