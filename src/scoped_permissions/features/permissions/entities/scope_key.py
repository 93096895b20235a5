"""Scope key value object and token parser.

A permission token optionally carries the region and world it is scoped to:
``[region/][world:]permission``. Parsing is purely syntactic; it never checks
that the region or world exists.
"""

from dataclasses import dataclass
from typing import Optional

from ....config.constants import REGION_SEPARATOR, WORLD_SEPARATOR, Specificity


@dataclass(frozen=True)
class ScopeKey:
    """Immutable (region, world, permission) triple parsed from a token."""

    region: Optional[str]
    world: Optional[str]
    permission: str

    @property
    def key(self) -> str:
        """Lowercase permission name used for every comparison."""
        return self.permission.lower()

    @property
    def specificity(self) -> Specificity:
        return specificity_of(self.region, self.world)

    def __str__(self) -> str:
        return format_scope_key(self)


def specificity_of(region: Optional[str], world: Optional[str]) -> Specificity:
    """Rank a (region, world) scope; any region outranks world-only."""
    if region is not None:
        return Specificity.REGION_WORLD if world is not None else Specificity.REGION
    if world is not None:
        return Specificity.WORLD
    return Specificity.GLOBAL


def parse_scope_key(token: str) -> ScopeKey:
    """Parse a raw permission token into a ScopeKey.

    Never raises. A token that does not split cleanly (empty region, empty
    world or empty permission part) is taken whole as the bare permission.
    """
    raw = (token or "").strip()
    remainder = raw
    region = None
    world = None

    # The region segment only counts when its separator precedes any world separator
    region_idx = remainder.find(REGION_SEPARATOR)
    world_idx = remainder.find(WORLD_SEPARATOR)
    if region_idx >= 0 and (world_idx < 0 or region_idx < world_idx):
        region, remainder = remainder[:region_idx], remainder[region_idx + 1:]
        if not region.strip():
            return ScopeKey(None, None, raw)

    world_idx = remainder.find(WORLD_SEPARATOR)
    if world_idx >= 0:
        world, remainder = remainder[:world_idx], remainder[world_idx + 1:]
        if not world.strip():
            return ScopeKey(None, None, raw)

    if not remainder.strip():
        return ScopeKey(None, None, raw)

    return ScopeKey(
        region=region.strip().lower() if region is not None else None,
        world=world.strip().lower() if world is not None else None,
        permission=remainder.strip(),
    )


def format_scope_key(scope: ScopeKey) -> str:
    """Render a ScopeKey back into its canonical token form."""
    parts = []
    if scope.region is not None:
        parts.append(f"{scope.region}{REGION_SEPARATOR}")
    if scope.world is not None:
        parts.append(f"{scope.world}{WORLD_SEPARATOR}")
    parts.append(scope.permission)
    return "".join(parts)
