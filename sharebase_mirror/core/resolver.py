"""
Resolution of paths against a tree, refreshing parents on cache misses.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable, cast

from .exceptions import ChildNotFoundError, NotAParentError, UnexpectedKindError
from .gateway import BaseGateway
from .path import format_path, split_path
from .tree import BaseNode, Document, Folder, Library, ParentNode, Tree
from .types import Kind

__all__ = [
    "PathResolver",
]


class PathResolver:
    """
    Resolves sequences of names to nodes of a {obj}`Tree`.

    A name missing from the cache causes exactly one refresh of its parent;
    if still missing afterward it's reported as {obj}`ChildNotFoundError`.
    """

    _tree: Tree
    _client: BaseGateway
    _logger: Logger

    def __init__(
        self,
        tree: Tree,
        client: BaseGateway,
        *,
        logger: Logger | None = None,
    ):
        """
        :param tree: Tree to resolve paths in
        :param client: Client used to refresh parents
        :param logger: Logger to use, or `None` to use default logger
        """
        self._tree = tree
        self._client = client
        self._logger = logger or logging.getLogger()

    @property
    def tree(self) -> Tree:
        return self._tree

    def resolve(
        self, parts: Iterable[str], origin: ParentNode | None = None
    ) -> BaseNode:
        """
        Resolve path relative to origin, or relative to root (i.e. starting
        with a library name) if origin is `None`.

        :raises NotAParentError: A component other than the last is a document
        :raises ChildNotFoundError: A component doesn't exist
        """
        node: BaseNode = origin or self._tree.root

        for part in parts:
            if not isinstance(node, ParentNode):
                raise NotAParentError(node)

            self._logger.debug(f"Getting child '{part}' from {node.str_short}")
            node = self._child(node, part)

        return node

    def resolve_parent(
        self, parts: Iterable[str], origin: ParentNode | None = None
    ) -> tuple[ParentNode, str]:
        """
        Resolve the parent of a path and return it along with the path's last
        component. The last component itself need not exist, e.g. if it's
        the target of an upload.
        """
        dir_parts, base = split_path(tuple(parts))

        node = self.resolve(dir_parts, origin)
        if not isinstance(node, ParentNode):
            raise NotAParentError(node)

        return (node, base)

    def resolve_folder(
        self, parts: Iterable[str], origin: ParentNode | None = None
    ) -> Folder:
        """
        Resolve path which must refer to a folder.
        """
        return cast(Folder, self._resolve_kind(parts, origin, Folder))

    def resolve_document(
        self, parts: Iterable[str], origin: ParentNode | None = None
    ) -> Document:
        """
        Resolve path which must refer to a document.
        """
        return cast(Document, self._resolve_kind(parts, origin, Document))

    def library_by_name(self, name: str) -> Library:
        """
        Get library by name, refreshing the list of libraries if needed.
        """
        node = self._child(self._tree.root, name)

        if not isinstance(node, Library):
            raise UnexpectedKindError(Kind.LIBRARY, node)

        return node

    def get_or_create_folder(
        self, parts: Iterable[str], origin: ParentNode | None = None
    ) -> Folder:
        """
        Get folder with the given path, creating it and any missing
        intermediate folders if it doesn't exist.

        :raises UnexpectedKindError: Path exists but isn't a folder
        """
        parts = tuple(parts)

        try:
            node = self.resolve(parts, origin)
        except ChildNotFoundError:
            pass
        else:
            if not isinstance(node, Folder):
                raise UnexpectedKindError(Kind.FOLDER, node)
            return node

        full_path = (origin.path if origin is not None else ()) + parts

        if len(full_path) < 2:
            raise ValueError(
                f"Cannot create folder {format_path(full_path)}: path must include a library and folder name"
            )

        library = self.library_by_name(full_path[0])

        self._logger.info(f"Creating folder {format_path(full_path)}")
        self._client.new_folder(library.model, list(full_path[1:]))

        # walk the path again to pick up the new folder(s)
        return self.resolve_folder(parts, origin)

    def _resolve_kind(
        self,
        parts: Iterable[str],
        origin: ParentNode | None,
        cls: type[BaseNode],
    ) -> BaseNode:
        node = self.resolve(parts, origin)

        if not isinstance(node, cls):
            raise UnexpectedKindError(cls.kind, node)

        return node

    def _child(self, parent: ParentNode, name: str) -> BaseNode:
        """
        Lookup child by name, refreshing the parent once upon a miss.
        """
        child = parent.child_by_name(name)

        if child is None:
            self._tree.refresh(parent, self._client)

            child = parent.child_by_name(name)
            if child is None:
                raise ChildNotFoundError(name)

        return child
