import datetime
import io
import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from typing import BinaryIO

from pytest import fixture

from sharebase_mirror import (
    BaseGateway,
    DocumentContent,
    DocumentModel,
    FolderModel,
    Kind,
    LibraryModel,
    NotFoundError,
    PathResolver,
    StatusError,
    Tree,
    UploadModel,
)
from sharebase_mirror.core.gateway.models import (
    DocumentLinks,
    FolderEmbedded,
    FolderLinks,
    LibraryLinks,
    UploadLinks,
)

logging.basicConfig(level=logging.WARNING)

DATA_CENTER = "https://sharebase.test/sharebasews/"
TOKEN = "test-token"


@dataclass
class FakeObject:
    kind: Kind
    id: int
    name: str
    parent: tuple[Kind, int] | None = None
    content: bytes = b""
    date_modified: datetime.datetime | None = None


class FakeGateway(BaseGateway):
    """
    In-memory ShareBase store which records calls made to it.

    Besides the gateway interface, provides methods for tests to change the
    remote state behind the tree's back.
    """

    calls: Counter[str]
    patches: list[int]
    stall: bool
    fail: set[str]
    closed: int

    def __init__(self, data_center: str = DATA_CENTER, token: str = TOKEN):
        self.data_center = data_center
        self.token = token

        self.calls = Counter()
        self.patches = []
        self.stall = False
        self.fail = set()
        self.closed = 0

        self._objects: dict[tuple[Kind, int], FakeObject] = dict()
        self._uploads: dict[str, bytearray] = dict()
        self._next_id = 1000

    # setup and manipulation by tests

    def add_library(self, name: str, id: int | None = None) -> LibraryModel:
        obj = self._add(Kind.LIBRARY, name, None, id)
        return self._library_model(obj)

    def add_folder(
        self,
        parent: LibraryModel | FolderModel,
        name: str,
        id: int | None = None,
    ) -> FolderModel:
        obj = self._add(Kind.FOLDER, name, _key(parent), id)
        return self._folder_model(obj)

    def add_document(
        self,
        folder: FolderModel,
        name: str,
        content: bytes = b"",
        id: int | None = None,
    ) -> DocumentModel:
        obj = self._add(Kind.DOCUMENT, name, _key(folder), id)
        obj.content = content
        obj.date_modified = datetime.datetime(2024, 1, 1, 12, 0, 0)
        return self._document_model(obj)

    def rename(self, kind: Kind, id: int, name: str):
        self._objects[(kind, id)].name = name

    def touch(self, id: int):
        """
        Change a document's metadata.
        """
        obj = self._objects[(Kind.DOCUMENT, id)]
        assert obj.date_modified is not None
        obj.date_modified += datetime.timedelta(days=1)

    def move(self, kind: Kind, id: int, parent: LibraryModel | FolderModel):
        self._objects[(kind, id)].parent = _key(parent)

    def delete(self, kind: Kind, id: int):
        del self._objects[(kind, id)]

    def find(self, kind: Kind, name: str) -> FakeObject | None:
        return next(
            (o for o in self._objects.values() if o.kind is kind and o.name == name),
            None,
        )

    # gateway interface

    def libraries(self) -> list[LibraryModel]:
        self._call("libraries")
        return [
            self._library_model(o)
            for o in self._objects.values()
            if o.kind is Kind.LIBRARY
        ]

    def folders(self, library: LibraryModel) -> list[FolderModel]:
        self._call("folders")
        return [
            self._folder_model(o)
            for o in self._children(_key(library))
            if o.kind is Kind.FOLDER
        ]

    def folder(
        self,
        parent: LibraryModel | FolderModel,
        folder_id: int,
        *,
        embed: bool = True,
    ) -> FolderModel:
        self._call("folder")

        obj = self._objects.get((Kind.FOLDER, folder_id))
        if obj is None or obj.parent != _key(parent):
            raise NotFoundError(Kind.FOLDER, id=folder_id)

        model = self._folder_model(obj)

        if embed:
            children = self._children((Kind.FOLDER, folder_id))
            embedded = FolderEmbedded(
                folders=[
                    self._folder_model(o)
                    for o in children
                    if o.kind is Kind.FOLDER
                ],
                documents=[
                    self._document_model(o)
                    for o in children
                    if o.kind is Kind.DOCUMENT
                ],
            )
            model = model.model_copy(update={"embedded": embedded})

        return model

    def new_folder(self, library: LibraryModel, parts: list[str]) -> FolderModel:
        self._call("new_folder")

        parent = _key(library)
        obj: FakeObject | None = None

        for part in parts:
            obj = next(
                (
                    o
                    for o in self._children(parent)
                    if o.kind is Kind.FOLDER and o.name == part
                ),
                None,
            )
            if obj is None:
                obj = self._add(Kind.FOLDER, part, parent)
            parent = (Kind.FOLDER, obj.id)

        assert obj is not None
        return self._folder_model(obj)

    def new_small_document(
        self, folder: FolderModel, name: str, content: BinaryIO
    ) -> None:
        self._call("new_small_document")
        obj = self._add(Kind.DOCUMENT, name, _key(folder))
        obj.content = content.read()

    def create_upload(self, folder: FolderModel, name: str) -> UploadModel:
        self._call("create_upload")

        location = f"api/temp/{uuid.uuid4()}"
        self._uploads[location] = bytearray()

        return UploadModel(
            links=UploadLinks(location=location),
            file_name=name,
        )

    def patch_upload(self, upload: UploadModel, data: bytes) -> UploadModel:
        self._call("patch_upload")
        self.patches.append(len(data))

        if self.stall:
            return upload.model_copy()

        buffer = self._uploads[upload.links.location]
        buffer += data

        return upload.model_copy(update={"current_size": len(buffer)})

    def finalize_upload(
        self, folder: FolderModel, upload: UploadModel
    ) -> DocumentModel | None:
        self._call("finalize_upload")

        obj = self._add(Kind.DOCUMENT, upload.file_name, _key(folder))
        obj.content = bytes(self._uploads.pop(upload.links.location))

        return self._document_model(obj)

    def content(self, document: DocumentModel) -> DocumentContent:
        self._call("content")

        obj = self._objects.get((Kind.DOCUMENT, document.document_id))
        if obj is None:
            raise NotFoundError(Kind.DOCUMENT, id=document.document_id)

        # serve in small chunks to exercise streaming
        chunks = [obj.content[i : i + 4] for i in range(0, len(obj.content), 4)]

        return DocumentContent(
            document=document,
            chunks=iter(chunks),
            length=len(obj.content),
            closer=io.BytesIO(),
        )

    def close(self):
        self.closed += 1

    def _call(self, name: str):
        self.calls[name] += 1
        if name in self.fail:
            raise StatusError(500, f"injected failure: {name}")

    def _add(
        self,
        kind: Kind,
        name: str,
        parent: tuple[Kind, int] | None,
        id: int | None = None,
    ) -> FakeObject:
        if id is None:
            id = self._next_id
            self._next_id += 1

        assert (kind, id) not in self._objects

        obj = FakeObject(kind, id, name, parent)
        self._objects[(kind, id)] = obj
        return obj

    def _children(self, parent: tuple[Kind, int]) -> list[FakeObject]:
        return [o for o in self._objects.values() if o.parent == parent]

    def _library_model(self, obj: FakeObject) -> LibraryModel:
        return LibraryModel(
            library_id=obj.id,
            library_name=obj.name,
            links=LibraryLinks(
                self_link=f"api/libraries/{obj.id}",
                folders=f"api/libraries/{obj.id}/folders",
            ),
        )

    def _folder_model(self, obj: FakeObject) -> FolderModel:
        assert obj.parent is not None
        return FolderModel(
            folder_id=obj.id,
            folder_name=obj.name,
            links=FolderLinks(
                self_link=f"api/folders/{obj.id}",
                folders=f"api/folders/{obj.id}/folders",
                documents=f"api/folders/{obj.id}/documents",
            ),
        )

    def _document_model(self, obj: FakeObject) -> DocumentModel:
        return DocumentModel(
            document_id=obj.id,
            document_name=obj.name,
            date_modified=obj.date_modified,
            links=DocumentLinks(
                self_link=f"api/documents/{obj.id}",
                content=f"api/documents/{obj.id}/content",
            ),
        )


def _key(model: LibraryModel | FolderModel) -> tuple[Kind, int]:
    if isinstance(model, LibraryModel):
        return (Kind.LIBRARY, model.library_id)
    return (Kind.FOLDER, model.folder_id)


@fixture
def gateway() -> FakeGateway:
    """
    Create a store populated with:

    - Library "My Library" (1)
        - Folder "Reports" (10)
            - Folder "2024" (11)
            - Document "summary.txt" (100)
    - Library "Shared" (2)
    """
    gateway = FakeGateway()

    my_library = gateway.add_library("My Library", id=1)
    gateway.add_library("Shared", id=2)

    reports = gateway.add_folder(my_library, "Reports", id=10)
    gateway.add_folder(reports, "2024", id=11)
    gateway.add_document(reports, "summary.txt", b"quarterly numbers", id=100)

    return gateway


@fixture
def tree() -> Tree:
    return Tree()


@fixture
def resolver(tree: Tree, gateway: FakeGateway) -> PathResolver:
    return PathResolver(tree, gateway)
