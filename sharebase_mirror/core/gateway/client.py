"""
HTTP implementation of the gateway using the ShareBase web API.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import Any, BinaryIO, Mapping
from urllib.parse import urljoin

import requests
from pydantic import BaseModel, TypeAdapter

from ..exceptions import NotFoundError, StatusError
from ..types import Kind
from .gateway import BaseGateway, DocumentContent
from .models import (
    AuthToken,
    DocumentModel,
    FolderModel,
    LibraryModel,
    NewDocumentRequest,
    NewFolderRequest,
    UploadModel,
)

__all__ = [
    "Client",
    "TOKEN_PREFIX",
]

TOKEN_PREFIX = "PHOENIX-TOKEN"
"""
Prefix of the token value in the `Authorization` header of every request.
"""

FILEREF_HEADER = "x-sharebase-fileref"
"""
Header referencing a completed temporary upload when creating a document.
"""

FOLDER_PATH_SEP = "\\"
"""
Separator of folder path components as expected by the API.
"""

AUTHENTICATE_URL = "api/authenticate"
LIBRARIES_URL = "api/libraries"

CONTENT_CHUNK_SIZE = 64 * 1024

_libraries_adapter = TypeAdapter(list[LibraryModel])
_folders_adapter = TypeAdapter(list[FolderModel])


class Client(BaseGateway):
    """
    Connection to a ShareBase data center.

    Not safe for concurrent use; each thread should borrow its own client
    from a {obj}`ClientPool`.
    """

    data_center: str
    token: str

    num_requests: int
    """
    Total number of requests issued through this client, including failed
    ones.
    """

    timeout: float | None
    """
    Timeout passed to every request, or `None` to wait indefinitely.
    """

    _http: requests.Session
    _logger: Logger

    def __init__(
        self,
        data_center: str,
        token: str,
        *,
        timeout: float | None = None,
        logger: Logger | None = None,
    ):
        if not data_center:
            raise ValueError("data_center cannot be empty")
        if not token:
            raise ValueError("token cannot be empty")

        self.data_center = data_center
        self.token = token
        self.num_requests = 0
        self.timeout = timeout

        self._logger = logger or logging.getLogger()
        self._http = requests.Session()
        self._http.headers["Authorization"] = f"{TOKEN_PREFIX} {token}"

    def __str__(self):
        return f"Client(data_center='{self.data_center}')"

    @classmethod
    def authenticate(
        cls,
        data_center: str,
        username: str,
        password: str,
        *,
        timeout: float | None = None,
    ) -> AuthToken:
        """
        Get an API token for the given username and password.
        """
        for value, name in [
            (data_center, "data_center"),
            (username, "username"),
            (password, "password"),
        ]:
            if not value:
                raise ValueError(f"{name} cannot be empty")

        response = requests.get(
            _join_url(data_center, AUTHENTICATE_URL),
            auth=(username, password),
            timeout=timeout,
        )
        _check_status(response)

        return AuthToken.model_validate(response.json())

    def libraries(self) -> list[LibraryModel]:
        response = self._request("GET", LIBRARIES_URL)
        return _libraries_adapter.validate_python(response.json())

    def library(self, library_id: int) -> LibraryModel:
        try:
            response = self._request("GET", f"{LIBRARIES_URL}/{library_id}")
        except NotFoundError:
            raise NotFoundError(Kind.LIBRARY, id=library_id)

        return LibraryModel.model_validate(response.json())

    def folders(self, library: LibraryModel) -> list[FolderModel]:
        response = self._request("GET", library.links.folders)
        return _folders_adapter.validate_python(response.json())

    def folder(
        self,
        parent: LibraryModel | FolderModel,
        folder_id: int,
        *,
        embed: bool = True,
    ) -> FolderModel:
        params = {"embed": "d,f"} if embed else None

        try:
            response = self._request(
                "GET", f"{parent.links.folders}/{folder_id}", params=params
            )
        except NotFoundError:
            raise NotFoundError(Kind.FOLDER, id=folder_id)

        return FolderModel.model_validate(response.json())

    def new_folder(self, library: LibraryModel, parts: list[str]) -> FolderModel:
        request = NewFolderRequest(folder_path=FOLDER_PATH_SEP.join(parts))

        response = self._request(
            "POST",
            library.links.folders,
            data=request.dump_api(),
            headers={"Content-Type": "application/json"},
        )

        return FolderModel.model_validate(response.json())

    def new_small_document(
        self, folder: FolderModel, name: str, content: BinaryIO
    ) -> None:
        metadata = NewDocumentRequest(document_name=name)

        self._request(
            "POST",
            folder.links.documents,
            files={
                "metadata": (None, metadata.dump_api(), "application/json"),
                "file": (name, content),
            },
        )

    def create_upload(self, folder: FolderModel, name: str) -> UploadModel:
        response = self._request(
            "POST", f"{folder.links.self_link}/temp", params={"filename": name}
        )
        return UploadModel.model_validate(response.json())

    def patch_upload(self, upload: UploadModel, data: bytes) -> UploadModel:
        # content length must be known up front, otherwise the remote
        # creates an empty document
        response = self._request(
            "PATCH",
            upload.links.location,
            data=data,
            headers={"Content-Length": str(len(data))},
        )

        # response may omit fields, so merge into the existing state
        return _merge_model(upload, response.json())

    def finalize_upload(
        self, folder: FolderModel, upload: UploadModel
    ) -> DocumentModel | None:
        response = self._request(
            "POST",
            folder.links.documents,
            headers={
                FILEREF_HEADER: upload.dump_api(),
                "Content-Type": "application/json",
            },
        )

        if not response.content:
            return None

        return DocumentModel.model_validate(response.json())

    def content(self, document: DocumentModel) -> DocumentContent:
        try:
            response = self._request("GET", document.links.content, stream=True)
        except NotFoundError:
            raise NotFoundError(Kind.DOCUMENT, id=document.document_id)

        length_header = response.headers.get("Content-Length")

        return DocumentContent(
            document=document,
            chunks=response.iter_content(CONTENT_CHUNK_SIZE),
            length=int(length_header) if length_header is not None else None,
            content_type=response.headers.get("Content-Type"),
            content_disposition=response.headers.get("Content-Disposition"),
            closer=response,
        )

    def close(self):
        """
        Close the underlying HTTP session.
        """
        self._http.close()

    def _request(
        self,
        method: str,
        uri: str,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Issue a request relative to the data center and map error statuses
        to exceptions.
        """
        url = _join_url(self.data_center, uri)

        self.num_requests += 1
        self._logger.debug(f"{method} {url}")

        response = self._http.request(method, url, timeout=self.timeout, **kwargs)
        _check_status(response)

        return response


def _join_url(base: str, uri: str) -> str:
    """
    Resolve a possibly relative uri against the base URL. Absolute uris are
    returned unchanged.
    """
    if not base.endswith("/"):
        base += "/"
    return urljoin(base, uri)


def _check_status(response: requests.Response):
    if response.status_code == 404:
        raise NotFoundError()
    if not response.ok:
        raise StatusError(response.status_code, response.text)


def _merge_model[ModelT: BaseModel](
    model: ModelT, update: Mapping[str, Any]
) -> ModelT:
    """
    Validate an updated model from the existing model's fields overlaid with
    the fields of a (possibly partial) response.
    """
    fields = model.model_dump(mode="json", by_alias=True)
    fields.update(update)
    return type(model).model_validate(fields)
