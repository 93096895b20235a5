"""Permission entities package.

Domain entities, result types and protocols for permission resolution.
"""

from .scope_key import ScopeKey, parse_scope_key, format_scope_key, specificity_of
from .entry import Entry, EntryKey, entry_key, merge_order
from .group import Group, Membership
from .results import Provenance, ResolverResult, MutationResult
from .protocols import (
    ChildWeight,
    EntryStore,
    GroupGraphSource,
    MembershipStore,
    GroupStore,
    TransactionStrategy,
    PermissionRegistry,
    ResolvedPermissionCache,
    PlayerRefresher,
)

__all__ = [
    # Domain entities
    "ScopeKey",
    "parse_scope_key",
    "format_scope_key",
    "specificity_of",
    "Entry",
    "EntryKey",
    "entry_key",
    "merge_order",
    "Group",
    "Membership",

    # Results
    "Provenance",
    "ResolverResult",
    "MutationResult",

    # Protocols
    "ChildWeight",
    "EntryStore",
    "GroupGraphSource",
    "MembershipStore",
    "GroupStore",
    "TransactionStrategy",
    "PermissionRegistry",
    "ResolvedPermissionCache",
    "PlayerRefresher",
]
