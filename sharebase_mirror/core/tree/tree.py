"""
Mirror of the remote hierarchy with identity-preserving refresh.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from logging import Logger
from typing import Callable, Generator

from ..gateway import BaseGateway
from ..types import Kind
from .children import ChildIndex
from .node import NODE_CLASSES, BaseNode, ChildListing, ParentNode, Root
from .registry import KindRegistry

__all__ = [
    "Tree",
    "RefreshStats",
    "StopTraversal",
]


class StopTraversal(Exception):
    """
    Raised by a visitor passed to {obj}`Tree.traverse` to end the traversal
    early. This is not an error: the traversal returns normally.
    """


@dataclass(kw_only=True)
class RefreshStats:
    """
    Encapsulates statistics for a refresh of one parent.
    """

    created: int = 0
    """
    Number of nodes seen for the first time.
    """

    updated: int = 0
    """
    Number of existing nodes updated in place.
    """

    reclaimed: int = 0
    """
    Number of tombstoned nodes reattached.
    """

    moved: int = 0
    """
    Number of live nodes reattached from a different parent.
    """

    tombstoned: int = 0
    """
    Number of nodes no longer reported by the parent.
    """


class Tree:
    """
    In-process mirror of the libraries, folders and documents of a remote
    store.

    Nodes are never recreated once observed: a refresh updates existing
    nodes in place, and nodes which disappear from their parent are kept as
    tombstones so they can be reattached if reported again, e.g. after being
    moved to another folder.

    A tree must only be used from one thread at a time.
    """

    _root: Root
    _identity: KindRegistry
    _tombstones: KindRegistry
    _logger: Logger

    def __init__(self, *, logger: Logger | None = None):
        """
        :param logger: Logger to use, or `None` to use default logger
        """
        self._logger = logger or logging.getLogger()
        self._root = Root(self, None)
        self._identity = KindRegistry()
        self._tombstones = KindRegistry()

    @property
    def root(self) -> Root:
        return self._root

    def lookup(self, kind: Kind, id: int) -> BaseNode | None:
        """
        Get the live node with this kind-qualified id, if any.
        """
        return self._identity.get(kind, id)

    def is_tombstoned(self, kind: Kind, id: int) -> bool:
        """
        Whether a node with this kind-qualified id disappeared from its parent
        and has not been reported since.
        """
        return (kind, id) in self._tombstones

    @property
    def tombstones(self) -> list[BaseNode]:
        """
        Copy of all tombstoned nodes.
        """
        return list(self._tombstones)

    def refresh(self, parent: ParentNode, client: BaseGateway) -> RefreshStats:
        """
        Fetch the parent's current children and merge them into the tree.

        Nodes are looked up by kind-qualified id, first among live nodes and
        then among tombstones, and updated in place; only unknown ids create
        new nodes. Children no longer reported are tombstoned. If fetching
        fails the tree is left unchanged.
        """
        assert parent.tree is self

        listing: ChildListing = parent._fetch(client)
        stats = self._merge(parent, listing)

        self._logger.debug(
            f"Refreshed {parent.str_short}: {len(parent._children)} children, "
            f"{stats.created} created, {stats.updated} updated, "
            f"{stats.reclaimed} reclaimed, {stats.moved} moved, "
            f"{stats.tombstoned} tombstoned"
        )

        return stats

    def walk(
        self,
        start: ParentNode | None = None,
        *,
        client: BaseGateway | None = None,
    ) -> Generator[tuple[ParentNode, BaseNode], None, None]:
        """
        Yield (parent, child) pairs breadth-first, starting with the children
        of `start` (root if `None`).

        If `client` is provided, each parent is refreshed before its children
        are yielded; otherwise only cached children are visited.
        """
        queue: deque[ParentNode] = deque([start or self._root])

        while queue:
            parent = queue.popleft()

            if client is not None:
                self.refresh(parent, client)

            for child in parent.children:
                yield parent, child

                if isinstance(child, ParentNode):
                    queue.append(child)

    def traverse(
        self,
        start: ParentNode | None,
        visit: Callable[[ParentNode, BaseNode], None],
        *,
        client: BaseGateway | None = None,
    ) -> bool:
        """
        Invoke `visit` on each (parent, child) pair as yielded by
        {obj}`Tree.walk`.

        `visit` may raise {obj}`StopTraversal` to stop; any other exception
        propagates.

        :returns: `True` if all nodes were visited, `False` if stopped
        """
        for parent, child in self.walk(start, client=client):
            try:
                visit(parent, child)
            except StopTraversal:
                return False

        return True

    def _merge(self, parent: ParentNode, listing: ChildListing) -> RefreshStats:
        stats = RefreshStats()

        if listing.model is not None:
            old_name = parent.name
            parent._set_model(listing.model)

            grandparent = parent.parent
            if (
                parent.name != old_name
                and grandparent is not None
                and not grandparent._children.rename(parent, old_name)
            ):
                self._logger.warning(
                    f"Renamed {parent.str_short} in {grandparent.str_short}: duplicate name"
                )

        children = ChildIndex()

        for model in listing.children:
            node_cls = NODE_CLASSES[type(model)]
            kind = node_cls.kind
            id = node_cls._model_id(model)
            name = node_cls._model_name(model)

            # skip before touching any node so the index stays consistent
            # with the names of the nodes in it
            if (
                children.by_id(kind, id) is not None
                or children.by_name(name) is not None
            ):
                self._logger.warning(
                    f"Skipping {kind.value} '{name}' (id={id}) in {parent.str_short}: duplicate id or name"
                )
                continue

            node = self._identity.get(kind, id)
            reclaimed = False

            if node is None:
                node = self._tombstones.pop(kind, id)
                reclaimed = node is not None

                if reclaimed:
                    self._logger.debug(f"Reclaimed tombstone: {node.str_short}")
                    stats.reclaimed += 1

            if node is None:
                node = node_cls(self, parent, model)
                stats.created += 1
            else:
                old_parent = node.parent

                if old_parent is not parent:
                    # remove before updating model so the old index is
                    # consistent with the node's name
                    if old_parent is not None and old_parent._children.remove(
                        node
                    ):
                        self._logger.debug(
                            f"Moved {node.str_short} from {old_parent.str_short} to {parent.str_short}"
                        )
                        stats.moved += 1

                    node._parent = parent
                elif not reclaimed:
                    stats.updated += 1

                node._set_model(model)

            added = children.add(node)
            assert added

            self._identity.put(node)

        # tombstone children no longer reported, unless already moved to
        # another parent
        for child in parent._children:
            if child in children or child.parent is not parent:
                continue

            if self._identity.get(child.kind, child.id) is child:
                self._identity.pop(child.kind, child.id)

            self._tombstones.put(child)
            self._logger.debug(f"Tombstoned {child.str_short}")
            stats.tombstoned += 1

        parent._children = children

        return stats
