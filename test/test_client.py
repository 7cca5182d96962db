import io
import json
from urllib.parse import parse_qs, urlsplit

import requests
from pytest import fixture, raises
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from sharebase_mirror import *

DATA_CENTER = "https://sharebase.test/sharebasews/"
API = DATA_CENTER + "api"

LIBRARY_JSON = {
    "LibraryId": 1,
    "LibraryName": "My Library",
    "IsPrivate": True,
    "Links": {
        "Self": f"{API}/libraries/1",
        "Folders": f"{API}/libraries/1/folders",
    },
}

FOLDER_JSON = {
    "FolderId": 10,
    "FolderName": "Reports",
    "LibraryId": 1,
    "Links": {
        "Self": f"{API}/folders/10",
        "Folders": f"{API}/folders/10/folders",
        "Documents": f"{API}/folders/10/documents",
    },
}

DOCUMENT_JSON = {
    "DocumentId": 100,
    "DocumentName": "summary.txt",
    "DateModified": "2024-01-01T12:00:00",
    "Links": {
        "Self": f"{API}/documents/100",
        "Content": f"{API}/documents/100/content",
    },
}


class FakeAdapter(BaseAdapter):
    """
    Transport adapter serving canned responses by method and URL, ignoring
    query strings.
    """

    routes: dict[tuple[str, str], tuple[int, bytes, dict[str, str]]]
    requests: list[requests.PreparedRequest]

    def __init__(self):
        super().__init__()
        self.routes = dict()
        self.requests = []

    def add(
        self,
        method: str,
        url: str,
        body: object = None,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ):
        if isinstance(body, bytes):
            content = body
        elif body is None:
            content = b""
        else:
            content = json.dumps(body).encode()

        self.routes[(method, url)] = (status, content, headers or {})

    def send(self, request, **kwargs):
        self.requests.append(request)

        url = request.url.split("?")[0]
        status, content, headers = self.routes.get(
            (request.method, url), (404, b"not found", {})
        )

        response = requests.Response()
        response.status_code = status
        response._content = content
        response._content_consumed = True
        response.headers = CaseInsensitiveDict(headers)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request

        return response

    def close(self):
        pass


@fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@fixture
def client(adapter: FakeAdapter) -> Client:
    client = Client(DATA_CENTER, "secret")
    client._http.mount("https://", adapter)
    return client


def test_init():
    with raises(ValueError):
        Client("", "secret")

    with raises(ValueError):
        Client(DATA_CENTER, "")


def test_libraries(client: Client, adapter: FakeAdapter):
    adapter.add("GET", f"{API}/libraries", [LIBRARY_JSON])

    libraries = client.libraries()

    assert len(libraries) == 1
    assert libraries[0].library_id == 1
    assert libraries[0].library_name == "My Library"
    assert libraries[0].is_private is True
    assert libraries[0].links.folders == f"{API}/libraries/1/folders"

    request = adapter.requests[0]
    assert request.headers["Authorization"] == "PHOENIX-TOKEN secret"
    assert client.num_requests == 1


def test_library_by_name(client: Client, adapter: FakeAdapter):
    adapter.add("GET", f"{API}/libraries", [LIBRARY_JSON])

    assert client.library_by_name("My Library").library_id == 1

    with raises(NotFoundError) as e:
        client.library_by_name("Shared")

    assert e.value.kind is Kind.LIBRARY
    assert e.value.name == "Shared"
    assert e.value.id is None


def test_folder(client: Client, adapter: FakeAdapter):
    library = LibraryModel.model_validate(LIBRARY_JSON)

    adapter.add(
        "GET",
        f"{API}/libraries/1/folders/10",
        FOLDER_JSON | {"Embedded": {"Documents": [DOCUMENT_JSON], "Folders": []}},
    )

    folder = client.folder(library, 10)

    assert folder.folder_name == "Reports"
    assert folder.embedded is not None
    assert folder.embedded.documents[0].document_name == "summary.txt"
    assert folder.embedded.folders == []

    query = parse_qs(urlsplit(adapter.requests[0].url).query)
    assert query == {"embed": ["d,f"]}


def test_folder_not_found(client: Client):
    library = LibraryModel.model_validate(LIBRARY_JSON)

    with raises(NotFoundError) as e:
        client.folder(library, 99)

    assert e.value.kind is Kind.FOLDER
    assert e.value.id == 99


def test_status_error(client: Client, adapter: FakeAdapter):
    adapter.add("GET", f"{API}/libraries", b"server exploded", status=500)

    with raises(StatusError) as e:
        client.libraries()

    assert e.value.status == 500
    assert e.value.message == "server exploded"
    assert isinstance(e.value, SharebaseError)


def test_new_folder(client: Client, adapter: FakeAdapter):
    library = LibraryModel.model_validate(LIBRARY_JSON)
    adapter.add("POST", f"{API}/libraries/1/folders", FOLDER_JSON)

    folder = client.new_folder(library, ["Reports", "2025"])

    assert folder.folder_id == 10

    request = adapter.requests[0]
    assert json.loads(request.body) == {"FolderPath": "Reports\\2025"}


def test_chunked_upload(client: Client, adapter: FakeAdapter):
    folder = FolderModel.model_validate(FOLDER_JSON)
    location = f"{API}/temp/1234"

    adapter.add(
        "POST",
        f"{API}/folders/10/temp",
        {
            "Links": {"Location": location},
            "Identifier": "6f1c5a4e-8a0b-4a8e-9b1e-2f0c7b9d1e3a",
            "FileName": "big.bin",
            "CurrentSize": 0,
            "VolumeId": 3,
        },
    )
    adapter.add("PATCH", location, {"CurrentSize": 3})
    adapter.add("POST", f"{API}/folders/10/documents", DOCUMENT_JSON)

    upload = client.create_upload(folder, "big.bin")

    assert upload.links.location == location
    assert parse_qs(urlsplit(adapter.requests[0].url).query) == {
        "filename": ["big.bin"]
    }

    # partial response merged into existing state
    upload = client.patch_upload(upload, b"abc")

    assert upload.current_size == 3
    assert upload.links.location == location
    assert upload.volume_id == 3

    patch = adapter.requests[1]
    assert patch.body == b"abc"
    assert patch.headers["Content-Length"] == "3"

    document = client.finalize_upload(folder, upload)

    assert document is not None
    assert document.document_id == 100

    fileref = json.loads(adapter.requests[2].headers["x-sharebase-fileref"])
    assert fileref["Links"]["Location"] == location
    assert fileref["CurrentSize"] == 3


def test_small_document(client: Client, adapter: FakeAdapter):
    folder = FolderModel.model_validate(FOLDER_JSON)
    adapter.add("POST", f"{API}/folders/10/documents")

    client.new_small_document(folder, "hello.txt", io.BytesIO(b"hello"))

    request = adapter.requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="metadata"' in request.body
    assert b'"DocumentName":"hello.txt"' in request.body
    assert b"hello" in request.body


def test_content(client: Client, adapter: FakeAdapter):
    document = DocumentModel.model_validate(DOCUMENT_JSON)
    adapter.add(
        "GET",
        f"{API}/documents/100/content",
        b"quarterly numbers",
        headers={"Content-Length": "17", "Content-Type": "text/plain"},
    )

    with client.content(document) as content:
        data = b"".join(content)

    assert data == b"quarterly numbers"
    assert content.length == 17
    assert content.content_type == "text/plain"


def test_content_not_found(client: Client):
    document = DocumentModel.model_validate(DOCUMENT_JSON)

    with raises(NotFoundError) as e:
        client.content(document)

    assert e.value.kind is Kind.DOCUMENT
    assert e.value.id == 100


def test_authenticate(monkeypatch):
    calls = []

    def get(url, **kwargs):
        calls.append((url, kwargs))

        response = requests.Response()
        response.status_code = 200
        response._content = json.dumps({"Token": "new-token"}).encode()
        response.encoding = "utf-8"
        return response

    monkeypatch.setattr(requests, "get", get)

    token = Client.authenticate(DATA_CENTER, "user", "pass")

    assert token.token == "new-token"
    assert calls[0][0] == f"{API}/authenticate"
    assert calls[0][1]["auth"] == ("user", "pass")