"""Result types returned by resolution and mutation operations."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ....config.constants import Specificity
from ....core.exceptions import ScopedPermissionsError
from .group import Group


@dataclass(frozen=True)
class Provenance:
    """Where a resolved permission value came from."""

    subject_name: str
    is_group: bool
    specificity: Specificity


@dataclass
class ResolverResult:
    """Merged permissions plus the subjects that produced them."""

    permissions: Dict[str, bool]
    groups: List[Group] = field(default_factory=list)
    provenance: Dict[str, Provenance] = field(default_factory=dict)

    @property
    def group_names(self) -> List[str]:
        return [group.name for group in self.groups]


@dataclass
class MutationResult:
    """Outcome of a mutation; callers decide whether to halt a batch."""

    success: bool
    message: str
    error: Optional[ScopedPermissionsError] = None
    affected_players: Set[str] = field(default_factory=set)

    @classmethod
    def ok(cls, message: str, affected_players: Optional[Set[str]] = None) -> "MutationResult":
        return cls(success=True, message=message, affected_players=affected_players or set())

    @classmethod
    def failed(cls, message: str, error: Optional[ScopedPermissionsError] = None) -> "MutationResult":
        return cls(success=False, message=message, error=error)

    def __bool__(self) -> bool:
        return self.success
