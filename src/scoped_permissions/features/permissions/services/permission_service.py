"""Permission service for entity-level operations.

Coordinates the stores, the resolver, child expansion, caching and player
refresh behind one object built with explicit dependencies. Mutations
return a MutationResult instead of raising for expected failures such as a
missing group, so a command layer can decide whether to halt a batch.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set, Tuple
import logging

from ....config.constants import DefaultValues
from ....core.exceptions import ConfigurationError, MissingGroupError, ValidationError
from ....database import NullTransactionStrategy
from ..entities import (
    Entry, EntryStore, GroupGraphSource, GroupStore, MembershipStore, MutationResult,
    PermissionRegistry, PlayerRefresher, ResolvedPermissionCache, TransactionStrategy,
    format_scope_key, merge_order, parse_scope_key,
)
from .child_expander import expand_children
from .permission_resolver import PermissionResolver


logger = logging.getLogger(__name__)


def _kind(is_group: bool) -> str:
    return "group" if is_group else "player"


class PermissionService:
    """Service orchestrating permission reads, mutations and refreshes."""

    def __init__(
        self,
        entry_store: EntryStore,
        group_source: GroupGraphSource,
        membership_store: MembershipStore,
        group_store: Optional[GroupStore] = None,
        registry: Optional[PermissionRegistry] = None,
        transactions: Optional[TransactionStrategy] = None,
        cache: Optional[ResolvedPermissionCache] = None,
        refresher: Optional[PlayerRefresher] = None,
        default_group: Optional[str] = None
    ):
        self.entry_store = entry_store
        self.group_source = group_source
        self.membership_store = membership_store
        self.group_store = group_store
        self.registry = registry
        self.transactions = transactions or NullTransactionStrategy()
        self.cache = cache
        self.refresher = refresher
        self.resolver = PermissionResolver(entry_store, group_source, membership_store, default_group)
        self.default_group = self.resolver.memberships.default_group

    # Entries

    async def get_permission(self, name: str, is_group: bool, token: str) -> Optional[bool]:
        """Get the value an entity sets for a scoped permission, or None."""
        scope = parse_scope_key(token)
        return await self.transactions.execute(
            lambda: self.entry_store.get_entry(name.lower(), is_group, scope.region, scope.world, scope.permission),
            read_only=True,
        )

    async def set_permission(
        self,
        name: str,
        is_group: bool,
        token: str,
        value: Optional[bool] = True
    ) -> MutationResult:
        """Set a scoped permission; a missing value means true."""
        scope = parse_scope_key(token)
        if not scope.permission:
            return MutationResult.failed("Permission cannot be empty", ValidationError("Permission cannot be empty"))
        value = DefaultValues.SET_VALUE if value is None else value

        try:
            await self.transactions.execute(
                lambda: self.entry_store.set_entry(
                    name.lower(), is_group, scope.region, scope.world, scope.permission, value
                )
            )
        except MissingGroupError as e:
            logger.warning(f"Cannot set {token} on missing group {e.group_name}")
            return MutationResult.failed(e.message, e)

        logger.info(f"{format_scope_key(scope)} set to {value} for {_kind(is_group)} {name.lower()}")
        affected = await self._refresh_after_mutation(name, is_group)
        return MutationResult.ok(f"{format_scope_key(scope)} set to {str(value).lower()} for {name.lower()}", affected)

    async def unset_permission(self, name: str, is_group: bool, token: str) -> MutationResult:
        """Remove a scoped permission entry."""
        scope = parse_scope_key(token)
        removed = await self.transactions.execute(
            lambda: self.entry_store.unset_entry(name.lower(), is_group, scope.region, scope.world, scope.permission)
        )
        if not removed:
            return MutationResult.failed(f"{name.lower()} does not set {format_scope_key(scope)}")

        logger.info(f"{format_scope_key(scope)} unset for {_kind(is_group)} {name.lower()}")
        affected = await self._refresh_after_mutation(name, is_group)
        return MutationResult.ok(f"{format_scope_key(scope)} unset for {name.lower()}", affected)

    async def list_entries(self, name: str, is_group: bool) -> List[Entry]:
        """List an entity's own entries in a stable display order."""
        entries = await self.transactions.execute(
            lambda: self.entry_store.list_entries(name.lower(), is_group),
            read_only=True,
        )
        return sorted(entries, key=lambda entry: (entry.permission.lower(),) + merge_order(entry)[1:])

    async def purge(self, name: str, is_group: bool) -> MutationResult:
        """Delete a player or group together with everything it owns."""
        # Members and descendants of a group are unreachable after the delete, so collect them first
        stale_groups = await self._stale_groups(name) if is_group else []
        affected = await self._dependent_players(name, stale_groups) if is_group else {name.lower()}
        deleted = await self.transactions.execute(
            lambda: self.entry_store.delete_subject(name.lower(), is_group)
        )
        if not deleted:
            return MutationResult.failed(f"{_kind(is_group).capitalize()} not found.")

        logger.info(f"{_kind(is_group).capitalize()} {name.lower()} deleted")
        await self._invalidate_groups(stale_groups)
        await self._refresh_players(affected, self._reaches_default(stale_groups))
        return MutationResult.ok(f"{_kind(is_group).capitalize()} {name.lower()} deleted", affected)

    # Resolution

    async def effective_permissions(
        self,
        name: str,
        is_group: bool,
        world: Optional[str],
        regions: Optional[Iterable[str]] = None,
        expand: bool = True
    ) -> dict:
        """Resolve an entity's permissions, optionally expanding child permissions.

        The unexpanded map is what gets cached; expansion always runs against
        the current registry.
        """
        region_list = sorted({region.lower() for region in (regions or ())})

        resolved = None
        if self.cache is not None:
            resolved = await self.cache.get_permissions(name, is_group, world, region_list)

        if resolved is None:
            resolved = await self.transactions.execute(
                lambda: self.resolver.resolve(name, is_group, world, region_list),
                read_only=True,
            )
            if self.cache is not None:
                await self.cache.set_permissions(name, is_group, world, region_list, resolved)

        if expand and self.registry is not None:
            return expand_children(resolved, self.registry)
        return dict(resolved)

    async def has_permission(
        self,
        player: str,
        permission: str,
        world: Optional[str],
        regions: Optional[Iterable[str]] = None,
        default: bool = False
    ) -> bool:
        """Check one permission for a player; unset permissions yield ``default``."""
        permissions = await self.effective_permissions(player, False, world, regions)
        return permissions.get(permission.lower(), default)

    async def dump(
        self,
        name: str,
        is_group: bool,
        world: Optional[str],
        regions: Optional[Iterable[str]] = None,
        filter: Optional[str] = None
    ) -> List[Tuple[str, bool]]:
        """List effective permissions sorted by name, optionally filtered by substring."""
        permissions = await self.effective_permissions(name, is_group, world, regions)
        needle = filter.lower() if filter else None
        return sorted(
            (key, value) for key, value in permissions.items()
            if needle is None or needle in key
        )

    # Groups and memberships

    async def create_group(self, name: str, priority: int = 0) -> MutationResult:
        store = self._require_group_store()
        try:
            existing = await self.transactions.execute(lambda: self.group_source.get_group(name.lower()), read_only=True)
            if existing is not None:
                return MutationResult.failed(f"Group {existing.name} already exists")
            group = await self.transactions.execute(lambda: store.create_group(name, priority))
        except ValidationError as e:
            return MutationResult.failed(e.message, e)

        logger.info(f"Group {group.name} created with priority {group.priority}")
        return MutationResult.ok(f"Group {group.name} created")

    async def set_group_priority(self, name: str, priority: int) -> MutationResult:
        store = self._require_group_store()
        if isinstance(priority, bool) or not isinstance(priority, int):
            error = ValidationError(f"Group priority must be an integer, got: {priority!r}")
            return MutationResult.failed(error.message, error)
        try:
            await self.transactions.execute(lambda: store.set_priority(name, priority))
        except MissingGroupError as e:
            return MutationResult.failed(e.message, e)

        logger.info(f"Group {name.lower()} priority set to {priority}")
        affected = await self._refresh_after_mutation(name, True)
        return MutationResult.ok(f"Priority of {name.lower()} set to {priority}", affected)

    async def set_parents(self, name: str, parents: Sequence[str]) -> MutationResult:
        store = self._require_group_store()
        if name.lower() in {parent.lower() for parent in parents}:
            error = ValidationError(f"Group {name.lower()} cannot be its own parent")
            return MutationResult.failed(error.message, error)
        try:
            await self.transactions.execute(lambda: store.set_parents(name, list(parents)))
        except MissingGroupError as e:
            return MutationResult.failed(e.message, e)

        logger.info(f"Group {name.lower()} parents set to {[p.lower() for p in parents]}")
        affected = await self._refresh_after_mutation(name, True)
        return MutationResult.ok(f"Parents of {name.lower()} updated", affected)

    async def delete_group(self, name: str) -> MutationResult:
        return await self.purge(name, True)

    async def add_member(self, player: str, group_name: str, expiration: Optional[datetime] = None) -> MutationResult:
        store = self._require_group_store()
        try:
            await self.transactions.execute(lambda: store.add_member(player, group_name, expiration))
        except MissingGroupError as e:
            return MutationResult.failed(e.message, e)

        suffix = f" until {expiration.isoformat()}" if expiration else ""
        logger.info(f"Player {player.lower()} added to {group_name.lower()}{suffix}")
        affected = await self._refresh_after_mutation(player, False)
        return MutationResult.ok(f"{player.lower()} added to {group_name.lower()}{suffix}", affected)

    async def remove_member(self, player: str, group_name: str) -> MutationResult:
        store = self._require_group_store()
        removed = await self.transactions.execute(lambda: store.remove_member(player, group_name))
        if not removed:
            return MutationResult.failed(f"{player.lower()} is not a member of {group_name.lower()}")

        logger.info(f"Player {player.lower()} removed from {group_name.lower()}")
        affected = await self._refresh_after_mutation(player, False)
        return MutationResult.ok(f"{player.lower()} removed from {group_name.lower()}", affected)

    # Refresh

    async def affected_players(self, group_name: str) -> Set[str]:
        """Players whose permissions depend on a group, directly or via descendants."""
        async def collect() -> Set[str]:
            names = [group_name.lower()]
            names.extend(group.name for group in await self.resolver.graph.descendants_of(group_name))
            players: Set[str] = set()
            for name in names:
                players.update(membership.player for membership in await self.membership_store.list_members(name))
            return players

        return await self.transactions.execute(collect, read_only=True)

    async def _refresh_after_mutation(self, name: str, is_group: bool) -> Set[str]:
        if not is_group:
            players = {name.lower()}
            await self._refresh_players(players)
            return players

        stale_groups = await self._stale_groups(name)
        players = await self._dependent_players(name, stale_groups)
        await self._invalidate_groups(stale_groups)
        await self._refresh_players(players, self._reaches_default(stale_groups))
        return players

    async def _stale_groups(self, name: str) -> List[str]:
        descendants = await self.transactions.execute(
            lambda: self.resolver.graph.descendants_of(name), read_only=True
        )
        return [name.lower()] + [group.name for group in descendants]

    def _reaches_default(self, stale_groups: Sequence[str]) -> bool:
        return self.default_group is not None and self.default_group in stale_groups

    async def _dependent_players(self, name: str, stale_groups: Sequence[str]) -> Set[str]:
        players = await self.affected_players(name)
        if self._reaches_default(stale_groups):
            # Players without memberships hold the default group implicitly
            players.update(await self.transactions.execute(self.entry_store.list_players, read_only=True))
        return players

    async def _invalidate_groups(self, names: Iterable[str]) -> None:
        if self.cache is None:
            return
        for name in names:
            await self.cache.invalidate_subject(name, True)

    async def _refresh_players(self, players: Set[str], all_players: bool = False) -> None:
        if all_players and self.cache is not None:
            # Players with no stored state have cached maps but are never listed
            await self.cache.invalidate_players()
        # Each player resolves independently; order does not matter
        for player in sorted(players):
            if self.cache is not None and not all_players:
                await self.cache.invalidate_subject(player, False)
            if self.refresher is not None:
                await self.refresher.refresh_player(player)
        if players:
            logger.debug(f"Refreshed {len(players)} players")

    def _require_group_store(self) -> GroupStore:
        if self.group_store is None:
            raise ConfigurationError("PermissionService was built without a group store")
        return self.group_store
