"""
Models of objects exchanged with the ShareBase web API.

The API uses PascalCase keys; fields here are snake_case with generated
aliases.
"""

from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

__all__ = [
    "AuthToken",
    "LibraryModel",
    "FolderModel",
    "DocumentModel",
    "UploadModel",
]


class BaseApiModel(BaseModel):
    """
    Base model for API objects.
    """

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )

    def dump_api(self) -> str:
        """
        Serialize to JSON as expected by the API.
        """
        return self.model_dump_json(by_alias=True)


class AuthToken(BaseApiModel):
    """
    Returned when authenticating with a username and password.
    """

    token: str
    user_name: str = ""
    user_id: int = 0
    expiration_date: datetime.datetime | None = None


class LibraryLinks(BaseApiModel):
    self_link: str = Field("", alias="Self")
    folders: str = ""


class LibraryModel(BaseApiModel):
    """
    Library as returned by the API.
    """

    library_id: int
    library_name: str
    is_private: bool = False
    links: LibraryLinks = Field(default_factory=LibraryLinks)


class FolderLinks(BaseApiModel):
    self_link: str = Field("", alias="Self")
    folders: str = ""
    documents: str = ""
    shares: str = ""


class FolderEmbedded(BaseApiModel):
    """
    Child objects embedded in a folder response, if requested.
    """

    documents: list[DocumentModel] = Field(default_factory=list)
    folders: list[FolderModel] = Field(default_factory=list)


class FolderModel(BaseApiModel):
    """
    Folder as returned by the API.
    """

    folder_id: int
    folder_name: str
    library_id: int = 0
    links: FolderLinks = Field(default_factory=FolderLinks)
    embedded: FolderEmbedded | None = None


class DocumentLinks(BaseApiModel):
    self_link: str = Field("", alias="Self")
    content: str = ""


class DocumentModel(BaseApiModel):
    """
    Document as returned by the API.
    """

    document_id: int
    document_name: str
    date_modified: datetime.datetime | None = None
    links: DocumentLinks = Field(default_factory=DocumentLinks)


class UploadLinks(BaseApiModel):
    location: str = ""


class UploadModel(BaseApiModel):
    """
    Temporary upload handle of a chunked upload. Returned when the upload
    is created and again, updated, after each patch.
    """

    links: UploadLinks = Field(default_factory=UploadLinks)
    identifier: uuid.UUID | None = None
    file_name: str = ""
    current_size: int = 0
    volume_id: int = 0


class NewFolderRequest(BaseApiModel):
    folder_path: str


class NewDocumentRequest(BaseApiModel):
    document_name: str


FolderEmbedded.model_rebuild()
FolderModel.model_rebuild()
