"""
Registries of nodes by kind-qualified id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from ..types import Kind

if TYPE_CHECKING:
    from .node import BaseNode, Document, Folder, Library

__all__ = [
    "KindBundle",
    "KindRegistry",
]


@dataclass
class KindBundle:
    """
    Nodes sharing an integer id, at most one per kind. Ids are assigned
    independently per kind, so e.g. a library and a document may both have
    id 1.
    """

    library: Library | None = None
    folder: Folder | None = None
    document: Document | None = None

    @property
    def empty(self) -> bool:
        return self.library is None and self.folder is None and self.document is None

    def get(self, kind: Kind) -> BaseNode | None:
        return getattr(self, _SLOTS[kind])

    def set(self, node: BaseNode):
        setattr(self, _SLOTS[node.kind], node)

    def clear(self, kind: Kind) -> BaseNode | None:
        """
        Clear slot for this kind and return its previous node.
        """
        node = self.get(kind)
        setattr(self, _SLOTS[kind], None)
        return node

    def nodes(self) -> list[BaseNode]:
        return [
            node
            for node in (self.library, self.folder, self.document)
            if node is not None
        ]


_SLOTS: dict[Kind, str] = {
    Kind.LIBRARY: "library",
    Kind.FOLDER: "folder",
    Kind.DOCUMENT: "document",
}


class KindRegistry:
    """
    Mapping of kind-qualified id to node. Bundles are dropped as soon as
    all their slots are empty.
    """

    _bundles: dict[int, KindBundle]

    def __init__(self):
        self._bundles = dict()

    def __len__(self) -> int:
        return sum(len(bundle.nodes()) for bundle in self._bundles.values())

    def __iter__(self) -> Iterator[BaseNode]:
        for bundle in self._bundles.values():
            yield from bundle.nodes()

    def __contains__(self, key: tuple[Kind, int]) -> bool:
        kind, id = key
        return self.get(kind, id) is not None

    def get(self, kind: Kind, id: int) -> BaseNode | None:
        bundle = self._bundles.get(id)
        if bundle is None:
            return None
        return bundle.get(kind)

    def put(self, node: BaseNode):
        """
        Register node in its kind's slot, keeping any nodes of other kinds
        having the same id.
        """
        bundle = self._bundles.get(node.id)

        if bundle is None:
            bundle = KindBundle()
            self._bundles[node.id] = bundle

        bundle.set(node)

    def pop(self, kind: Kind, id: int) -> BaseNode | None:
        """
        Remove and return the node with this kind-qualified id, if any.
        """
        bundle = self._bundles.get(id)
        if bundle is None:
            return None

        node = bundle.clear(kind)

        if bundle.empty:
            del self._bundles[id]

        return node

    def bundle(self, id: int) -> KindBundle | None:
        """
        Get the bundle of nodes sharing this integer id, if any.
        """
        return self._bundles.get(id)
