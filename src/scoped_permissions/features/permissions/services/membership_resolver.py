"""Active group membership lookup for players."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ....utils.datetime import utc_now
from ..entities import Group, GroupGraphSource, MembershipStore
from .group_graph import GroupGraph


logger = logging.getLogger(__name__)


class MembershipResolver:
    """Resolves the groups a player currently belongs to.

    Expiration is a read-time filter only; expired memberships stay in the
    store until some maintenance job removes them.
    """

    def __init__(
        self,
        membership_store: MembershipStore,
        group_source: GroupGraphSource,
        default_group: Optional[str] = None
    ):
        self.membership_store = membership_store
        self.graph = GroupGraph(group_source)
        self.default_group = default_group.lower() if default_group else None

    async def active_groups_of(self, player: str, now: Optional[datetime] = None) -> List[Group]:
        """Get a player's active direct groups, highest priority first."""
        now = now or utc_now()
        memberships = await self.membership_store.list_memberships(player.lower())

        groups: Dict[str, Group] = {}
        for membership in memberships:
            if not membership.is_active(now):
                logger.debug(f"Skipping expired membership {player.lower()} -> {membership.group_name}")
                continue
            if membership.group_name not in groups:
                groups[membership.group_name] = await self.graph.require_group(membership.group_name)

        if not groups and self.default_group:
            default = await self.graph.source.get_group(self.default_group)
            if default is not None:
                return [default]
            logger.debug(f"Default group {self.default_group} does not exist; {player.lower()} has no groups")

        return sorted(groups.values(), key=Group.rank_key)
