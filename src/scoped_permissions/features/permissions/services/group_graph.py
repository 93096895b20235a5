"""Group inheritance graph traversal.

Ancestors are found breadth-first from a group's direct parents. Each level
is ordered by descending priority and then name, and a visited set keyed by
lowercase name guarantees that diamonds and cycles visit every group once.
"""

import logging
from typing import Dict, Iterable, List, Sequence, Set, Union

from ....core.exceptions import MissingGroupError
from ..entities import Group, GroupGraphSource


logger = logging.getLogger(__name__)


class GroupGraph:
    """Cycle-safe queries over a GroupGraphSource."""

    def __init__(self, source: GroupGraphSource):
        self.source = source

    async def require_group(self, name: str) -> Group:
        """Get a group or raise MissingGroupError."""
        group = await self.source.get_group(name.lower())
        if group is None:
            raise MissingGroupError(name.lower())
        return group

    async def ancestors_of(self, group: Union[Group, str]) -> List[Group]:
        """Get every ancestor ordered by distance, then priority, then name.

        The starting group is never part of its own ancestry, even when the
        stored graph contains a cycle back to it.
        """
        if isinstance(group, str):
            group = await self.require_group(group)

        visited = {group.name}
        parents = await self.source.get_parents(group.name)
        return await self._walk(parents, visited)

    async def expand(self, direct_groups: Sequence[Group]) -> List[Group]:
        """Order a set of direct groups followed by their combined ancestry.

        The direct groups form distance one; their ancestors are interleaved
        level by level with the same priority/name rule and deduplicated.
        """
        visited: Set[str] = set()
        seed: List[Group] = []
        for group in sorted(direct_groups, key=Group.rank_key):
            if group.name not in visited:
                visited.add(group.name)
                seed.append(group)

        parents: List[str] = []
        for group in seed:
            parents.extend(await self.source.get_parents(group.name))

        return seed + await self._walk(parents, visited)

    async def descendants_of(self, name: str) -> List[Group]:
        """Get every group that transitively inherits from the named group."""
        name = name.lower()
        groups = await self.source.list_groups()

        children: Dict[str, List[Group]] = {}
        for group in groups:
            for parent in group.parents:
                children.setdefault(parent, []).append(group)

        visited = {name}
        ordered: List[Group] = []
        frontier = [name]
        while frontier:
            level: List[Group] = []
            for current in frontier:
                for child in children.get(current, []):
                    if child.name not in visited:
                        visited.add(child.name)
                        level.append(child)
            level.sort(key=Group.rank_key)
            ordered.extend(level)
            frontier = [group.name for group in level]
        return ordered

    async def _walk(self, first_level: Iterable[str], visited: Set[str]) -> List[Group]:
        ordered: List[Group] = []
        frontier = list(first_level)
        depth = 1
        while frontier:
            level: List[Group] = []
            for name in frontier:
                name = name.lower()
                if name in visited:
                    continue
                visited.add(name)
                level.append(await self.require_group(name))

            level.sort(key=Group.rank_key)
            ordered.extend(level)
            if level:
                logger.debug(f"Ancestor level {depth}: {[g.name for g in level]}")

            frontier = []
            for group in level:
                frontier.extend(await self.source.get_parents(group.name))
            depth += 1
        return ordered
