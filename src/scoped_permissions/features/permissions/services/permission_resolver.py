"""Permission resolution for players and groups.

Resolution builds an ordered subject list (the entity first, then its groups
closest and highest priority first), filters each subject's entries down to
those applicable in the observed world and regions, and merges them:

* a missing key is inserted;
* an existing key is only replaced by a strictly more specific entry
  (region+world > region > world > global);
* at equal specificity the subject seen first wins, so a closer subject
  beats a farther one and ties are stable.

Resolution is a pure read. It takes no locks and keeps no state between
calls, so callers may run it concurrently.
"""

import logging
from datetime import datetime
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Tuple

from ..entities import (
    Entry, EntryStore, Group, GroupGraphSource, MembershipStore,
    Provenance, ResolverResult, merge_order,
)
from .group_graph import GroupGraph
from .membership_resolver import MembershipResolver


logger = logging.getLogger(__name__)


Subject = Tuple[str, bool]


def merge_entries(
    subject_entries: Sequence[Tuple[Subject, Iterable[Entry]]],
    world: Optional[str],
    regions: AbstractSet[str]
) -> Tuple[Dict[str, bool], Dict[str, Provenance]]:
    """Merge per-subject entries, closest subject first, into one map.

    Args:
        subject_entries: (subject, entries) pairs in precedence order
        world: Lowercase world being observed, or None
        regions: Lowercase active region names

    Returns:
        Tuple of (permission map, provenance per key)
    """
    permissions: Dict[str, bool] = {}
    provenance: Dict[str, Provenance] = {}

    for (subject_name, is_group), entries in subject_entries:
        applicable = sorted(
            (entry for entry in entries if entry.applies_to(world, regions)),
            key=merge_order,
        )
        for entry in applicable:
            key = entry.permission.lower()
            current = provenance.get(key)
            if current is not None and entry.specificity <= current.specificity:
                continue
            permissions[key] = entry.value
            provenance[key] = Provenance(subject_name, is_group, entry.specificity)

    return permissions, provenance


class PermissionResolver:
    """Computes effective permission maps from the stores it is given."""

    def __init__(
        self,
        entry_store: EntryStore,
        group_source: GroupGraphSource,
        membership_store: MembershipStore,
        default_group: Optional[str] = None
    ):
        self.entry_store = entry_store
        self.graph = GroupGraph(group_source)
        self.memberships = MembershipResolver(membership_store, group_source, default_group)

    async def resolve(
        self,
        entity_name: str,
        is_group: bool,
        world: Optional[str],
        active_regions: Optional[Iterable[str]] = None
    ) -> Dict[str, bool]:
        """Resolve the merged permission map of a player or group."""
        result = await self.resolve_detailed(entity_name, is_group, world, active_regions)
        return result.permissions

    async def resolve_player(
        self,
        player: str,
        world: Optional[str],
        active_regions: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None
    ) -> ResolverResult:
        return await self.resolve_detailed(player, False, world, active_regions, now=now)

    async def resolve_group(
        self,
        group_name: str,
        world: Optional[str],
        active_regions: Optional[Iterable[str]] = None
    ) -> Dict[str, bool]:
        return await self.resolve(group_name, True, world, active_regions)

    async def resolve_detailed(
        self,
        entity_name: str,
        is_group: bool,
        world: Optional[str],
        active_regions: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None
    ) -> ResolverResult:
        """Resolve and keep the group order and per-key provenance.

        Raises:
            MissingGroupError: If the target group or any ancestor is missing
        """
        name = entity_name.lower()
        world = world.lower() if world else None
        regions = frozenset(region.lower() for region in (active_regions or ()))

        groups = await self.subject_groups(name, is_group, now=now)
        subjects: List[Subject] = [] if is_group else [(name, False)]
        subjects.extend((group.name, True) for group in groups)

        subject_entries = []
        for subject in subjects:
            entries = await self.entry_store.list_entries(*subject)
            subject_entries.append((subject, entries))

        permissions, provenance = merge_entries(subject_entries, world, regions)
        logger.debug(
            f"Resolved {len(permissions)} permissions for {'group' if is_group else 'player'} "
            f"{name} in world={world} regions={sorted(regions)} via {[s[0] for s in subjects]}"
        )
        return ResolverResult(permissions=permissions, groups=groups, provenance=provenance)

    async def subject_groups(self, name: str, is_group: bool, now: Optional[datetime] = None) -> List[Group]:
        """Get the ordered groups whose entries feed a resolution.

        For a group this is the group itself followed by its ancestors; for a
        player it is the active direct groups followed by their ancestry.
        """
        if is_group:
            target = await self.graph.require_group(name)
            return [target] + await self.graph.ancestors_of(target)

        direct = await self.memberships.active_groups_of(name, now=now)
        return await self.graph.expand(direct)
