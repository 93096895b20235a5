"""In-memory store implementing every permission storage protocol.

Suitable for embedding, tests and hosts that persist elsewhere. Each call is
atomic: writes are serialized by an asyncio lock and reads never await in
the middle of a snapshot, so a resolution run on one event loop sees a
consistent state.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ....core.exceptions import MissingGroupError
from ....utils.datetime import ensure_utc
from ..entities import Entry, EntryKey, Group, Membership, entry_key


logger = logging.getLogger(__name__)


class InMemoryPermissionStore:
    """Dictionary-backed EntryStore, GroupGraphSource, MembershipStore and GroupStore."""

    def __init__(self):
        self._entries: Dict[EntryKey, Entry] = {}
        self._groups: Dict[str, Group] = {}
        self._memberships: Dict[Tuple[str, str], Membership] = {}
        self._lock = asyncio.Lock()

    # Entry store

    async def get_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> Optional[bool]:
        entry = self._entries.get(entry_key(subject_name, is_group, region, world, permission))
        return entry.value if entry is not None else None

    async def set_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str,
        value: bool
    ) -> None:
        async with self._lock:
            if is_group and subject_name.lower() not in self._groups:
                raise MissingGroupError(subject_name.lower())

            entry = Entry(
                subject_name=subject_name.lower(),
                is_group=is_group,
                region=region.lower() if region is not None else None,
                world=world.lower() if world is not None else None,
                permission=permission,
                value=value,
            )
            self._entries[entry.key] = entry

    async def unset_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> bool:
        async with self._lock:
            key = entry_key(subject_name, is_group, region, world, permission)
            return self._entries.pop(key, None) is not None

    async def list_entries(self, subject_name: str, is_group: bool) -> List[Entry]:
        name = subject_name.lower()
        return [
            entry for key, entry in self._entries.items()
            if key[0] == name and key[1] == is_group
        ]

    async def list_players(self) -> List[str]:
        names = {key[0] for key in self._entries if not key[1]}
        names.update(key[0] for key in self._memberships)
        return sorted(names)

    async def delete_subject(self, subject_name: str, is_group: bool) -> bool:
        if is_group:
            return await self.delete_group(subject_name)

        async with self._lock:
            name = subject_name.lower()
            entry_keys = [key for key in self._entries if key[0] == name and not key[1]]
            membership_keys = [key for key in self._memberships if key[0] == name]
            for key in entry_keys:
                del self._entries[key]
            for key in membership_keys:
                del self._memberships[key]
            return bool(entry_keys or membership_keys)

    # Group graph source

    async def get_group(self, name: str) -> Optional[Group]:
        return self._groups.get(name.lower())

    async def get_parents(self, name: str) -> List[str]:
        group = self._groups.get(name.lower())
        return list(group.parents) if group is not None else []

    async def list_groups(self) -> List[Group]:
        return sorted(self._groups.values(), key=lambda group: group.name)

    # Membership store

    async def list_memberships(self, player: str) -> List[Membership]:
        name = player.lower()
        return [membership for key, membership in self._memberships.items() if key[0] == name]

    async def list_members(self, group_name: str) -> List[Membership]:
        name = group_name.lower()
        return [membership for key, membership in self._memberships.items() if key[1] == name]

    # Group maintenance

    async def create_group(self, name: str, priority: int = 0) -> Group:
        async with self._lock:
            existing = self._groups.get(name.lower())
            if existing is not None:
                return existing
            group = Group(name=name, priority=priority)
            self._groups[group.name] = group
            logger.debug(f"Created group {group.name} (priority {priority})")
            return group

    async def set_priority(self, name: str, priority: int) -> None:
        async with self._lock:
            group = self._require(name)
            self._groups[group.name] = Group(name=group.name, priority=priority, parents=group.parents)

    async def set_parents(self, name: str, parents: Sequence[str]) -> None:
        async with self._lock:
            group = self._require(name)
            for parent in parents:
                self._require(parent)
            self._groups[group.name] = Group(name=group.name, priority=group.priority, parents=tuple(parents))

    async def delete_group(self, name: str) -> bool:
        async with self._lock:
            name = name.lower()
            if self._groups.pop(name, None) is None:
                return False

            for key in [key for key in self._entries if key[0] == name and key[1]]:
                del self._entries[key]
            for key in [key for key in self._memberships if key[1] == name]:
                del self._memberships[key]
            for other in list(self._groups.values()):
                if name in other.parents:
                    self._groups[other.name] = Group(
                        name=other.name,
                        priority=other.priority,
                        parents=tuple(p for p in other.parents if p != name),
                    )
            return True

    async def add_member(self, player: str, group_name: str, expiration: Optional[datetime] = None) -> None:
        async with self._lock:
            group = self._require(group_name)
            membership = Membership(player=player, group_name=group.name, expiration=ensure_utc(expiration))
            self._memberships[(membership.player, membership.group_name)] = membership

    async def remove_member(self, player: str, group_name: str) -> bool:
        async with self._lock:
            return self._memberships.pop((player.lower(), group_name.lower()), None) is not None

    def _require(self, name: str) -> Group:
        group = self._groups.get(name.lower())
        if group is None:
            raise MissingGroupError(name.lower())
        return group
