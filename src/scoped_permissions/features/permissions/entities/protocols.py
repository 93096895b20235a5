"""Protocol interfaces for permission feature dependency injection.

Defines contracts for the entry store, the group graph source, membership
lookups, transactions, the host permission registry and caching. The
resolver and service are constructed with implementations of these; there
is no global instance.
"""

from abc import abstractmethod
from datetime import datetime
from typing import (
    Awaitable, Callable, Dict, List, Mapping, Optional, Protocol,
    Sequence, TypeVar, Union, runtime_checkable,
)

from .entry import Entry
from .group import Group, Membership


T = TypeVar("T")

ChildWeight = Union[bool, int, float]


@runtime_checkable
class EntryStore(Protocol):
    """Protocol for permission entry data access."""

    @abstractmethod
    async def get_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> Optional[bool]:
        """Get the stored value at an exact key, or None."""
        ...

    @abstractmethod
    async def set_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str,
        value: bool
    ) -> None:
        """Create or overwrite an entry. Raises MissingGroupError for unknown groups."""
        ...

    @abstractmethod
    async def unset_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> bool:
        """Remove an entry. Returns True if one was removed."""
        ...

    @abstractmethod
    async def list_entries(self, subject_name: str, is_group: bool) -> List[Entry]:
        """List every entry owned by a subject."""
        ...

    @abstractmethod
    async def list_players(self) -> List[str]:
        """List every player with entries or memberships, sorted by name."""
        ...

    @abstractmethod
    async def delete_subject(self, subject_name: str, is_group: bool) -> bool:
        """Delete a subject and its entries. Returns True if it existed."""
        ...


@runtime_checkable
class GroupGraphSource(Protocol):
    """Protocol for reading the group inheritance graph."""

    @abstractmethod
    async def get_group(self, name: str) -> Optional[Group]:
        """Get a group by name."""
        ...

    @abstractmethod
    async def get_parents(self, name: str) -> List[str]:
        """Get the ordered parent names of a group."""
        ...

    @abstractmethod
    async def list_groups(self) -> List[Group]:
        """List every group."""
        ...


@runtime_checkable
class MembershipStore(Protocol):
    """Protocol for player membership lookups."""

    @abstractmethod
    async def list_memberships(self, player: str) -> List[Membership]:
        """List a player's memberships, expired ones included."""
        ...

    @abstractmethod
    async def list_members(self, group_name: str) -> List[Membership]:
        """List the memberships of a group, expired ones included."""
        ...


@runtime_checkable
class GroupStore(Protocol):
    """Protocol for group and membership maintenance."""

    @abstractmethod
    async def create_group(self, name: str, priority: int = 0) -> Group:
        """Create a group, or return the existing one."""
        ...

    @abstractmethod
    async def set_priority(self, name: str, priority: int) -> None:
        """Change a group's priority. Raises MissingGroupError."""
        ...

    @abstractmethod
    async def set_parents(self, name: str, parents: Sequence[str]) -> None:
        """Replace a group's parents. Raises MissingGroupError for any unknown name."""
        ...

    @abstractmethod
    async def delete_group(self, name: str) -> bool:
        """Delete a group with its entries, memberships and parent links."""
        ...

    @abstractmethod
    async def add_member(self, player: str, group_name: str, expiration: Optional[datetime] = None) -> None:
        """Add or refresh a membership. Raises MissingGroupError."""
        ...

    @abstractmethod
    async def remove_member(self, player: str, group_name: str) -> bool:
        """Remove a membership. Returns True if one was removed."""
        ...


@runtime_checkable
class TransactionStrategy(Protocol):
    """Protocol for running a unit of work atomically against the store."""

    @abstractmethod
    async def execute(self, work: Callable[[], Awaitable[T]], read_only: bool = False) -> T:
        """Run work inside one transaction and return its result."""
        ...


@runtime_checkable
class PermissionRegistry(Protocol):
    """Protocol for the host's static permission definitions."""

    @abstractmethod
    def children_of(self, permission: str) -> Mapping[str, ChildWeight]:
        """Get the child permissions implied by a permission, or an empty mapping."""
        ...


@runtime_checkable
class ResolvedPermissionCache(Protocol):
    """Protocol for caching resolved permission maps."""

    @abstractmethod
    async def get_permissions(
        self,
        subject_name: str,
        is_group: bool,
        world: Optional[str],
        regions: Sequence[str]
    ) -> Optional[Dict[str, bool]]:
        """Get a cached resolved map."""
        ...

    @abstractmethod
    async def set_permissions(
        self,
        subject_name: str,
        is_group: bool,
        world: Optional[str],
        regions: Sequence[str],
        permissions: Dict[str, bool]
    ) -> None:
        """Cache a resolved map."""
        ...

    @abstractmethod
    async def invalidate_subject(self, subject_name: str, is_group: bool) -> None:
        """Drop every cached map of a subject."""
        ...

    @abstractmethod
    async def invalidate_players(self) -> None:
        """Drop the cached maps of every player."""
        ...


@runtime_checkable
class PlayerRefresher(Protocol):
    """Protocol for pushing recomputed permissions to an online player."""

    @abstractmethod
    async def refresh_player(self, player: str) -> None:
        """Recompute and apply a player's effective permissions."""
        ...
