"""Group and membership domain entities.

Groups live in an arena indexed by lowercase name; parents are referenced by
name so that inheritance is an explicit directed graph.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ....core.exceptions import ValidationError
from ....config.constants import DefaultValues
from ....utils.datetime import ensure_utc, is_expired


@dataclass(frozen=True)
class Group:
    """Domain entity representing a named group with priority and parents."""

    name: str
    priority: int = DefaultValues.GROUP_PRIORITY
    parents: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Normalize the name and parent references."""
        if not self.name or not self.name.strip():
            raise ValidationError("Group name cannot be empty")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValidationError(f"Group priority must be an integer, got: {self.priority!r}")

        object.__setattr__(self, "name", self.name.strip().lower())

        # Ordered set: keep first occurrence, drop duplicates
        seen = []
        for parent in self.parents:
            parent = parent.strip().lower()
            if parent and parent not in seen:
                seen.append(parent)
        object.__setattr__(self, "parents", tuple(seen))

    def rank_key(self) -> Tuple[int, str]:
        """Sort key: higher priority first, then name."""
        return (-self.priority, self.name)

    def __str__(self) -> str:
        return f"Group({self.name})"


@dataclass(frozen=True)
class Membership:
    """A player's membership in a group, optionally expiring."""

    player: str
    group_name: str
    expiration: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "player", self.player.strip().lower())
        object.__setattr__(self, "group_name", self.group_name.strip().lower())
        object.__setattr__(self, "expiration", ensure_utc(self.expiration))

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Active until the expiration instant; no expiration means forever."""
        return not is_expired(self.expiration, now)
