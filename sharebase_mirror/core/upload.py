"""
Upload of documents, either with a single request or in fixed-size patches.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from logging import Logger
from typing import BinaryIO

from .exceptions import UploadStalledError, UploadStateError
from .gateway import BaseGateway, DocumentModel, UploadModel
from .tree import Folder
from .types import PATCH_SIZE, SMALL_FILE_CUTOFF

__all__ = [
    "DocumentWriter",
    "WriterState",
    "upload_document",
]


class WriterState(Enum):
    """
    State of a {obj}`DocumentWriter`.
    """

    OPENED = auto()
    """Temporary upload created, nothing written yet"""

    BUFFERING = auto()
    """Accepting data into the patch buffer"""

    FLUSHING = auto()
    """Sending a full buffer as one patch"""

    FINALIZING = auto()
    """Sending the last patch, if any, and creating the document"""

    CLOSED = auto()
    """Document created"""

    FAILED = auto()
    """A patch or the finalize request failed; the writer is unusable"""


class DocumentWriter:
    """
    Writes a new document in patches of fixed size.

    Written data is buffered and sent as a patch each time the buffer is
    full. {obj}`DocumentWriter.close` sends any remaining data and creates
    the document; it must be called exactly once.

    The writer keeps a reference to its folder node rather than a copy of its
    model, so it remains valid if the folder is refreshed while writing.
    """

    _client: BaseGateway
    _folder: Folder
    _name: str
    _patch_size: int
    _upload: UploadModel
    _buffer: bytearray
    _state: WriterState
    _patch_count: int
    _document: DocumentModel | None
    _logger: Logger

    def __init__(
        self,
        client: BaseGateway,
        folder: Folder,
        name: str,
        *,
        patch_size: int = PATCH_SIZE,
        logger: Logger | None = None,
    ):
        """
        :param client: Client to upload with; must not be used by others until closed
        :param folder: Folder in which to create the document
        :param name: Name of new document
        :param patch_size: Maximum size of each patch
        :param logger: Logger to use, or `None` to use default logger
        """
        assert patch_size > 0

        self._client = client
        self._folder = folder
        self._name = name
        self._patch_size = patch_size
        self._buffer = bytearray()
        self._patch_count = 0
        self._document = None
        self._logger = logger or logging.getLogger()

        self._upload = client.create_upload(folder.model, name)
        self._state = WriterState.OPENED

        self._logger.debug(
            f"Opened upload of '{name}' in {folder.str_short}: {self._upload.links.location}"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, traceback):
        if exc_type:
            # abandon temporary upload
            self._logger.error(f"Abandoning upload of '{self._name}'")
            self._state = WriterState.FAILED
            return

        self.close()

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def name(self) -> str:
        return self._name

    @property
    def folder(self) -> Folder:
        return self._folder

    @property
    def size(self) -> int:
        """
        Size of the temporary upload as last reported by the remote.
        """
        return self._upload.current_size

    @property
    def patch_count(self) -> int:
        """
        Number of patches sent so far.
        """
        return self._patch_count

    @property
    def document(self) -> DocumentModel | None:
        """
        Created document, if the remote returned it upon finalizing.
        """
        return self._document

    def writable(self) -> bool:
        return self._state in {WriterState.OPENED, WriterState.BUFFERING}

    def write(self, data: bytes) -> int:
        """
        Buffer data, sending a patch each time the buffer fills up.

        :returns: Number of bytes written, always `len(data)`
        """
        self._check_writable()
        self._state = WriterState.BUFFERING

        view = memoryview(data)

        while len(view):
            count = min(self._patch_size - len(self._buffer), len(view))

            self._buffer += view[:count]
            view = view[count:]

            if len(self._buffer) == self._patch_size:
                self._flush()

        return len(data)

    def close(self):
        """
        Send remaining data and create the document.

        :raises UploadStateError: Writer was already closed or failed
        """
        self._check_writable()
        self._state = WriterState.FINALIZING

        if self._buffer:
            self._flush()
            self._state = WriterState.FINALIZING

        try:
            self._document = self._client.finalize_upload(
                self._folder.model, self._upload
            )
        except Exception:
            self._state = WriterState.FAILED
            raise

        self._state = WriterState.CLOSED

        self._logger.debug(
            f"Finished document '{self._name}' in {self._folder.str_short}: {self._upload.current_size} bytes, {self._patch_count} patches"
        )

    def _flush(self):
        """
        Send buffer as a single patch.
        """
        assert len(self._buffer)

        previous_size = self._upload.current_size
        self._state = WriterState.FLUSHING

        try:
            upload = self._client.patch_upload(self._upload, bytes(self._buffer))
        except Exception:
            self._state = WriterState.FAILED
            raise

        self._patch_count += 1

        if upload.current_size <= previous_size:
            self._state = WriterState.FAILED
            raise UploadStalledError(self._name, upload.current_size)

        self._upload = upload
        self._buffer.clear()
        self._state = WriterState.BUFFERING

    def _check_writable(self):
        if not self.writable():
            raise UploadStateError(
                f"Writer for '{self._name}' is {self._state.name.lower()}"
            )


def upload_document(
    client: BaseGateway,
    folder: Folder,
    name: str,
    source: BinaryIO,
    *,
    size: int | None = None,
    patch_size: int = PATCH_SIZE,
    logger: Logger | None = None,
):
    """
    Create a document from a binary stream. Sources with a known size below
    {obj}`SMALL_FILE_CUTOFF` are uploaded with a single request, others in
    patches.

    The folder isn't refreshed; the new document is picked up upon the
    folder's next refresh.

    :param size: Size of source if known, e.g. from the filesystem
    """
    logger = logger or logging.getLogger()

    if size is not None and size < SMALL_FILE_CUTOFF:
        logger.debug(f"Uploading '{name}' ({size} bytes) with single request")
        client.new_small_document(folder.model, name, source)
        return

    with DocumentWriter(
        client, folder, name, patch_size=patch_size, logger=logger
    ) as writer:
        while True:
            data = source.read(patch_size)
            if not data:
                break
            writer.write(data)
