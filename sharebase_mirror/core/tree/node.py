from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO, ClassVar, cast

from pydantic import BaseModel

from ..exceptions import ChildNotFoundError, UnexpectedKindError
from ..gateway import (
    BaseGateway,
    DocumentContent,
    DocumentModel,
    FolderModel,
    LibraryModel,
)
from ..types import Kind
from .children import ChildIndex

if TYPE_CHECKING:
    from ..upload import DocumentWriter
    from .tree import RefreshStats, Tree

__all__ = [
    "BaseNode",
    "ParentNode",
    "Root",
    "Library",
    "Folder",
    "Document",
]


class BaseNode[ModelT: BaseModel](ABC):
    """
    Object in the mirrored tree.

    Nodes are created by their {obj}`Tree` upon refresh and keep their
    identity for as long as the tree exists: refreshing only overwrites a
    node's model, so references held by callers stay valid.

    Should not be instantiated by user, but published for reference.
    """

    kind: ClassVar[Kind]

    _tree: Tree
    _parent: ParentNode | None
    _model: ModelT | None

    def __init__(
        self,
        tree: Tree,
        parent: ParentNode | None,
        model: ModelT | None = None,
    ):
        self._tree = tree
        self._parent = parent
        self._model = None

        if model is not None:
            self._set_model(model)

    def __str__(self):
        return self.str_short

    def __repr__(self):
        return f"<{type(self).__name__} name='{self.name}' id={self.id}>"

    @property
    @abstractmethod
    def id(self) -> int:
        """
        Integer id, unique among objects of the same kind.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Name, unique among siblings of any kind.
        """
        ...

    @property
    def parent(self) -> ParentNode | None:
        """
        Parent node as of the last refresh which reported this node.
        """
        return self._parent

    @property
    def model(self) -> ModelT:
        """
        Remote metadata as of the last refresh which reported this node.
        """
        assert self._model is not None
        return self._model

    @property
    def tree(self) -> Tree:
        return self._tree

    @property
    def path(self) -> tuple[str, ...]:
        """
        Names from the library down to this node.
        """
        names: list[str] = []
        node: BaseNode | None = self

        while node is not None and not isinstance(node, Root):
            names.append(node.name)
            node = node.parent

        return tuple(reversed(names))

    @property
    def str_short(self) -> str:
        return f"{self.kind.value} '{self.name}' (id={self.id})"

    @classmethod
    @abstractmethod
    def _model_id(cls, model: ModelT) -> int:
        """
        Get id from a model of this kind.
        """
        ...

    @classmethod
    @abstractmethod
    def _model_name(cls, model: ModelT) -> str:
        """
        Get name from a model of this kind.
        """
        ...

    def _set_model(self, model: ModelT):
        """
        Overwrite remote metadata; everything else is kept.
        """
        self._model = model


@dataclass
class ChildListing:
    """
    Result of fetching a parent's children.
    """

    children: list[BaseModel] = field(default_factory=list)
    """
    Models of children as reported by the remote.
    """

    model: BaseModel | None = None
    """
    Updated model of the parent itself, if it was fetched too.
    """


class ParentNode[ModelT: BaseModel](BaseNode[ModelT]):
    """
    Node which contains other nodes.
    """

    _children: ChildIndex

    def __init__(
        self,
        tree: Tree,
        parent: ParentNode | None,
        model: ModelT | None = None,
    ):
        super().__init__(tree, parent, model)
        self._children = ChildIndex()

    @property
    def children(self) -> list[BaseNode]:
        """
        Children as of the last refresh.
        """
        return self._children.children

    def child_by_name(self, name: str) -> BaseNode | None:
        """
        Get cached child by name, or `None` if not cached. Does not refresh.
        """
        return self._children.by_name(name)

    def child_by_id(self, kind: Kind, id: int) -> BaseNode | None:
        """
        Get cached child by kind-qualified id, or `None` if not cached.
        """
        return self._children.by_id(kind, id)

    def folder_by_name(self, name: str) -> Folder:
        """
        Get cached child folder by name.

        :raises ChildNotFoundError: No such child
        :raises UnexpectedKindError: Child is not a folder
        """
        return cast(Folder, self._typed_child(name, Folder))

    def refresh(self, client: BaseGateway) -> RefreshStats:
        """
        Refresh children from the remote. See {obj}`Tree.refresh`.
        """
        return self._tree.refresh(self, client)

    @abstractmethod
    def _fetch(self, client: BaseGateway) -> ChildListing:
        """
        Fetch current children from the remote.
        """
        ...

    def _typed_child(self, name: str, cls: type[BaseNode]) -> BaseNode:
        child = self.child_by_name(name)

        if child is None:
            raise ChildNotFoundError(name)
        if not isinstance(child, cls):
            raise UnexpectedKindError(cls.kind, child)

        return child


class Root(ParentNode[BaseModel]):
    """
    Root of the tree; its children are the libraries.
    """

    @property
    def id(self) -> int:
        return 0

    @property
    def name(self) -> str:
        return ""

    @property
    def str_short(self) -> str:
        return "Root"

    @classmethod
    def _model_id(cls, model: BaseModel) -> int:
        return 0

    @classmethod
    def _model_name(cls, model: BaseModel) -> str:
        return ""

    def library_by_name(self, name: str) -> Library:
        """
        Get cached library by name.
        """
        return cast(Library, self._typed_child(name, Library))

    def _fetch(self, client: BaseGateway) -> ChildListing:
        return ChildListing(children=list(client.libraries()))


class Library(ParentNode[LibraryModel]):
    """
    Top-level collection of folders.
    """

    kind = Kind.LIBRARY

    @property
    def id(self) -> int:
        return self.model.library_id

    @property
    def name(self) -> str:
        return self.model.library_name

    @property
    def is_private(self) -> bool:
        return self.model.is_private

    @classmethod
    def _model_id(cls, model: LibraryModel) -> int:
        return model.library_id

    @classmethod
    def _model_name(cls, model: LibraryModel) -> str:
        return model.library_name

    def _fetch(self, client: BaseGateway) -> ChildListing:
        # libraries only contain folders
        return ChildListing(children=list(client.folders(self.model)))


class Folder(ParentNode[FolderModel]):
    """
    Folder in a library or another folder.
    """

    kind = Kind.FOLDER

    @property
    def id(self) -> int:
        return self.model.folder_id

    @property
    def name(self) -> str:
        return self.model.folder_name

    @property
    def library(self) -> Library:
        """
        Library containing this folder.
        """
        node = self.parent
        while not isinstance(node, Library):
            assert node is not None
            node = node.parent
        return node

    def document_by_name(self, name: str) -> Document:
        """
        Get cached child document by name.

        :raises ChildNotFoundError: No such child
        :raises UnexpectedKindError: Child is not a document
        """
        return cast(Document, self._typed_child(name, Document))

    def writer(self, client: BaseGateway, name: str) -> DocumentWriter:
        """
        Open a writer creating a new document in this folder. Must be
        closed to create the document.
        """
        from ..upload import DocumentWriter

        return DocumentWriter(client, self, name)

    def upload(
        self,
        client: BaseGateway,
        name: str,
        source: BinaryIO,
        size: int | None = None,
    ):
        """
        Create a new document in this folder from a binary stream, choosing
        the upload method by size.
        """
        from ..upload import upload_document

        upload_document(client, self, name, source, size=size)

    @classmethod
    def _model_id(cls, model: FolderModel) -> int:
        return model.folder_id

    @classmethod
    def _model_name(cls, model: FolderModel) -> str:
        return model.folder_name

    def _set_model(self, model: FolderModel):
        # children are kept in the index, not the model
        if model.embedded is not None:
            model = model.model_copy(update={"embedded": None})
        super()._set_model(model)

    def _fetch(self, client: BaseGateway) -> ChildListing:
        assert self.parent is not None

        model = client.folder(self.parent.model, self.id, embed=True)

        children: list[BaseModel] = []
        if model.embedded is not None:
            children += model.embedded.folders
            children += model.embedded.documents

        return ChildListing(children=children, model=model)


class Document(BaseNode[DocumentModel]):
    """
    Document in a folder.
    """

    kind = Kind.DOCUMENT

    @property
    def id(self) -> int:
        return self.model.document_id

    @property
    def name(self) -> str:
        return self.model.document_name

    @property
    def folder(self) -> Folder:
        assert isinstance(self.parent, Folder)
        return self.parent

    def content(self, client: BaseGateway) -> DocumentContent:
        """
        Open this document's content for reading. Must be closed.
        """
        return client.content(self.model)

    @classmethod
    def _model_id(cls, model: DocumentModel) -> int:
        return model.document_id

    @classmethod
    def _model_name(cls, model: DocumentModel) -> str:
        return model.document_name


NODE_CLASSES: dict[type[BaseModel], type[BaseNode]] = {
    LibraryModel: Library,
    FolderModel: Folder,
    DocumentModel: Document,
}
"""
Mapping of model type to node type created from it.
"""
