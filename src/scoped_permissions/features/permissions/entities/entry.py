"""Permission entry domain entity.

An entry is a single stored fact: a subject (player or group) sets a
permission to true or false, optionally narrowed to a world and/or region.
"""

from dataclasses import dataclass
from typing import AbstractSet, Optional, Tuple

from ....config.constants import Specificity
from .scope_key import ScopeKey, specificity_of, format_scope_key


EntryKey = Tuple[str, bool, Optional[str], Optional[str], str]


@dataclass(frozen=True)
class Entry:
    """Domain entity for one (subject, scope, permission) -> value fact."""

    subject_name: str
    is_group: bool
    region: Optional[str]
    world: Optional[str]
    permission: str
    value: bool

    @property
    def key(self) -> EntryKey:
        """Uniqueness key; names and permissions compare case-insensitively."""
        return entry_key(self.subject_name, self.is_group, self.region, self.world, self.permission)

    @property
    def scope(self) -> ScopeKey:
        return ScopeKey(self.region, self.world, self.permission)

    @property
    def specificity(self) -> Specificity:
        return specificity_of(self.region, self.world)

    def applies_to(self, world: Optional[str], regions: AbstractSet[str]) -> bool:
        """Check whether this entry applies in the given world and active regions.

        ``world`` and ``regions`` are expected lowercase.
        """
        if self.region is not None and self.region not in regions:
            return False
        if self.world is not None and self.world != world:
            return False
        return True

    def __str__(self) -> str:
        return f"{format_scope_key(self.scope)}={str(self.value).lower()}"


def entry_key(
    subject_name: str,
    is_group: bool,
    region: Optional[str],
    world: Optional[str],
    permission: str,
) -> EntryKey:
    """Build the normalized uniqueness key for an entry."""
    return (
        subject_name.lower(),
        is_group,
        region.lower() if region is not None else None,
        world.lower() if world is not None else None,
        permission.lower(),
    )


def merge_order(entry: Entry) -> Tuple[int, str, str, str]:
    """Sort key giving a deterministic merge order within one subject."""
    return (
        -int(entry.specificity),
        entry.region or "",
        entry.world or "",
        entry.permission.lower(),
    )
