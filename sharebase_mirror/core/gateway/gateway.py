"""
Abstract interface to the remote document store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from ..exceptions import NotFoundError
from ..types import Kind
from .models import (
    DocumentModel,
    FolderModel,
    LibraryModel,
    UploadModel,
)

__all__ = [
    "BaseGateway",
    "DocumentContent",
]


class BaseGateway(ABC):
    """
    Logical operations on the remote store which the tree, resolver and
    uploads depend on.

    Implementations return API models and raise {obj}`NotFoundError` or
    {obj}`StatusError` for failures reported by the remote. A gateway is
    not safe for concurrent use; borrow one per thread from a
    {obj}`ClientPool`.
    """

    data_center: str
    """
    Base URL of the data center this gateway talks to.
    """

    token: str
    """
    API token used to authenticate.
    """

    @abstractmethod
    def libraries(self) -> list[LibraryModel]:
        """
        Get all libraries accessible with this gateway's token.
        """
        ...

    def library(self, library_id: int) -> LibraryModel:
        """
        Get a library by id.
        """
        for library in self.libraries():
            if library.library_id == library_id:
                return library
        raise NotFoundError(Kind.LIBRARY, id=library_id)

    def library_by_name(self, name: str) -> LibraryModel:
        """
        Get a library by name.
        """
        for library in self.libraries():
            if library.library_name == name:
                return library
        raise NotFoundError(Kind.LIBRARY, name=name)

    @abstractmethod
    def folders(self, library: LibraryModel) -> list[FolderModel]:
        """
        Get the top-level folders of a library.
        """
        ...

    @abstractmethod
    def folder(
        self,
        parent: LibraryModel | FolderModel,
        folder_id: int,
        *,
        embed: bool = True,
    ) -> FolderModel:
        """
        Get a folder by id from its parent library or folder. If `embed`,
        the response embeds the folder's child folders and documents.
        """
        ...

    @abstractmethod
    def new_folder(self, library: LibraryModel, parts: list[str]) -> FolderModel:
        """
        Create a folder in a library given its full path within the library.
        Intermediate folders are created as needed.
        """
        ...

    @abstractmethod
    def new_small_document(
        self, folder: FolderModel, name: str, content: BinaryIO
    ) -> None:
        """
        Create a document with a single multipart request.
        """
        ...

    @abstractmethod
    def create_upload(self, folder: FolderModel, name: str) -> UploadModel:
        """
        Create a temporary upload handle for a new document in a folder.
        """
        ...

    @abstractmethod
    def patch_upload(self, upload: UploadModel, data: bytes) -> UploadModel:
        """
        Append data to a temporary upload and return its updated state.
        """
        ...

    @abstractmethod
    def finalize_upload(
        self, folder: FolderModel, upload: UploadModel
    ) -> DocumentModel | None:
        """
        Create a document in a folder from a completed temporary upload.
        """
        ...

    @abstractmethod
    def content(self, document: DocumentModel) -> DocumentContent:
        """
        Open a document's content for reading. Must be closed.
        """
        ...

    def close(self):
        """
        Release any resources held by this gateway; it must not be used
        afterward.
        """
        pass


@dataclass(kw_only=True)
class DocumentContent:
    """
    Content of a document being downloaded.
    """

    document: DocumentModel
    chunks: Iterator[bytes]
    length: int | None = None
    content_type: str | None = None
    content_disposition: str | None = None
    closer: object | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, traceback):
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        return self.chunks

    def close(self):
        """
        Release the underlying connection, if any.
        """
        close = getattr(self.closer, "close", None)
        if close is not None:
            close()
