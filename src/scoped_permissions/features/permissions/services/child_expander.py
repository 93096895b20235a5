"""Recursive expansion of implied child permissions.

A permission definition may list children, each with a sign. When the parent
resolves to ``value`` a child resolves to ``value XOR (weight is negative)``,
and that result is carried down as the new value for the child's own
children, so inversions compose across levels.
"""

from typing import Callable, Dict, Mapping, Set, Union

from ..entities import ChildWeight, PermissionRegistry


ChildrenOf = Callable[[str], Mapping[str, ChildWeight]]


def is_negative(weight: ChildWeight) -> bool:
    """Booleans are negative when False, numbers when below zero."""
    if isinstance(weight, bool):
        return not weight
    return weight < 0


def expand_children(
    permissions: Mapping[str, bool],
    children_of: Union[ChildrenOf, PermissionRegistry]
) -> Dict[str, bool]:
    """Flatten a resolved map with every implied child permission.

    Roots and children are visited in sorted order. A permission reached
    again through a different path overwrites its earlier value. A child
    already on the current recursion path is skipped, so cyclic definitions
    terminate.

    Args:
        permissions: Resolved permission map
        children_of: Callable or registry returning child -> weight mappings

    Returns:
        New map containing the roots and all descendants, lowercase keys
    """
    lookup = children_of.children_of if isinstance(children_of, PermissionRegistry) else children_of

    result: Dict[str, bool] = {}
    for permission in sorted(permissions, key=str.lower):
        key = permission.lower()
        value = permissions[permission]
        result[key] = value
        _expand(result, lookup, key, value)
    return result


def _expand(result: Dict[str, bool], lookup: ChildrenOf, root: str, value: bool) -> None:
    # Depth-first with an explicit stack; deep definition trees must not hit the recursion limit
    children = lookup(root) or {}
    stack = [(root, value, children, iter(sorted(children, key=str.lower)))]
    path: Set[str] = {root}

    while stack:
        permission, current, children, pending = stack[-1]
        child = next(pending, None)
        if child is None:
            stack.pop()
            path.discard(permission)
            continue

        key = child.lower()
        if key in path:
            continue

        child_value = current ^ is_negative(children[child])
        result[key] = child_value

        grandchildren = lookup(key) or {}
        path.add(key)
        stack.append((key, child_value, grandchildren, iter(sorted(grandchildren, key=str.lower))))
