"""Static permission definition registry.

Hosts describe which permissions imply which children, each child with a
weight whose sign says whether it follows or inverts its parent.
"""

from typing import Dict, Mapping, Optional

from ..entities import ChildWeight


class StaticPermissionRegistry:
    """Case-insensitive, dictionary-backed PermissionRegistry."""

    def __init__(self, definitions: Optional[Mapping[str, Mapping[str, ChildWeight]]] = None):
        self._children: Dict[str, Dict[str, ChildWeight]] = {}
        for permission, children in (definitions or {}).items():
            self.register(permission, children)

    def register(self, permission: str, children: Mapping[str, ChildWeight]) -> None:
        """Define (or replace) the children of a permission."""
        self._children[permission.lower()] = {child.lower(): weight for child, weight in children.items()}

    def unregister(self, permission: str) -> bool:
        return self._children.pop(permission.lower(), None) is not None

    def children_of(self, permission: str) -> Mapping[str, ChildWeight]:
        return dict(self._children.get(permission.lower(), {}))

    def __contains__(self, permission: str) -> bool:
        return permission.lower() in self._children

    def __len__(self) -> int:
        return len(self._children)
