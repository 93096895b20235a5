"""Permission services package.

Resolution algorithms and the orchestration service built on top of them.
"""

from .group_graph import GroupGraph
from .membership_resolver import MembershipResolver
from .permission_resolver import PermissionResolver, merge_entries
from .child_expander import expand_children, is_negative
from .permission_service import PermissionService

__all__ = [
    "GroupGraph",
    "MembershipResolver",
    "PermissionResolver",
    "merge_entries",
    "expand_children",
    "is_negative",
    "PermissionService",
]
