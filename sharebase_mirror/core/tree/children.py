"""
Index of a parent node's children.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from ..types import Kind

if TYPE_CHECKING:
    from .node import BaseNode

__all__ = [
    "ChildIndex",
]


class ChildIndex:
    """
    Ordered children of a parent, indexed by kind-qualified id and by name.

    At most one child may have a given kind-qualified id and at most one
    child may have a given name, regardless of kind.
    """

    _children: list[BaseNode]
    _ids: dict[tuple[Kind, int], int]
    _names: dict[str, int]

    def __init__(self):
        self._children = []
        self._ids = dict()
        self._names = dict()

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[BaseNode]:
        return iter(self._children)

    def __contains__(self, node: BaseNode) -> bool:
        index = self._ids.get((node.kind, node.id))
        return index is not None and self._children[index] is node

    def __repr__(self):
        return f"ChildIndex({[c.name for c in self._children]})"

    @property
    def children(self) -> list[BaseNode]:
        """
        Copy of children in order.
        """
        return list(self._children)

    def by_name(self, name: str) -> BaseNode | None:
        """
        Get child with the given name, or `None` if there is none.
        """
        index = self._names.get(name)
        if index is None:
            return None
        return self._children[index]

    def by_id(self, kind: Kind, id: int) -> BaseNode | None:
        """
        Get child with the given kind and id, or `None` if there is none.
        """
        index = self._ids.get((kind, id))
        if index is None:
            return None
        return self._children[index]

    def add(self, node: BaseNode) -> bool:
        """
        Append a child. Returns `False` without adding if a child with the
        same kind-qualified id or the same name already exists.
        """
        key = (node.kind, node.id)

        if key in self._ids or node.name in self._names:
            return False

        index = len(self._children)
        self._children.append(node)
        self._ids[key] = index
        self._names[node.name] = index

        return True

    def remove(self, node: BaseNode) -> bool:
        """
        Remove a child at any position and reindex the children after it.
        Returns `False` if the node is not a child.
        """
        key = (node.kind, node.id)
        index = self._ids.get(key)

        if index is None or self._children[index] is not node:
            return False

        del self._children[index]
        del self._ids[key]

        # drop names by position since nodes may have been renamed
        for name in [n for n, i in self._names.items() if i >= index]:
            del self._names[name]

        for i in range(index, len(self._children)):
            child = self._children[i]
            self._ids[(child.kind, child.id)] = i
            self._names.setdefault(child.name, i)

        return True

    def rename(self, node: BaseNode, old_name: str) -> bool:
        """
        Update the name mapping of a child which was renamed in place.
        Returns `False` if the node is not a child or its new name is taken
        by another child, in which case it's only indexed by id.
        """
        if node not in self:
            return False

        index = self._ids[(node.kind, node.id)]

        if self._names.get(old_name) == index:
            del self._names[old_name]

        if self._names.setdefault(node.name, index) != index:
            return False

        return True
