from __future__ import annotations

from typing import TYPE_CHECKING

from .types import Kind

if TYPE_CHECKING:
    from .tree.node import BaseNode

__all__ = [
    "SharebaseError",
    "NotFoundError",
    "StatusError",
    "ChildNotFoundError",
    "NotAParentError",
    "UnexpectedKindError",
    "UploadStalledError",
    "UploadStateError",
]


class SharebaseError(Exception):
    """
    Base class of errors raised by this package. Transport failures from
    `requests` are not wrapped and propagate as-is.
    """


class NotFoundError(SharebaseError):
    """
    Raised when the remote reports that an object does not exist.

    Exactly one of `id` or `name` is set, according to which key was used
    for the lookup.
    """

    kind: Kind | None
    id: int | None
    name: str | None

    def __init__(
        self,
        kind: Kind | None = None,
        *,
        id: int | None = None,
        name: str | None = None,
    ):
        self.kind = kind
        self.id = id
        self.name = name

        key = name if name is not None else id
        what = kind.value if kind is not None else "Object"
        super().__init__(f"{what} {key if key is not None else ''} not found")


class StatusError(SharebaseError):
    """
    Raised when the remote responds with an unexpected status code.
    """

    status: int
    message: str

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"status {status}: {message}")


class ChildNotFoundError(SharebaseError):
    """
    Raised when a child could not be found in its parent, even after
    refreshing the parent once.
    """

    name: str | None
    id: int | None

    def __init__(self, name: str | None = None, *, id: int | None = None):
        self.name = name
        self.id = id
        key = name if name is not None else id
        super().__init__(f"child not found: {key}")


class NotAParentError(SharebaseError):
    """
    Raised when a path component is looked up in an object which has no
    children, i.e. a document.
    """

    node: BaseNode

    def __init__(self, node: BaseNode):
        self.node = node
        super().__init__(
            f"expected folder or library, not {node.str_short}"
        )


class UnexpectedKindError(SharebaseError):
    """
    Raised when an object was found by name but is of the wrong kind, e.g.
    a document where a folder was expected.
    """

    expected: Kind
    node: BaseNode

    def __init__(self, expected: Kind, node: BaseNode):
        self.expected = expected
        self.node = node
        super().__init__(
            f"expected {expected.value}, got {node.str_short}"
        )


class UploadStalledError(SharebaseError):
    """
    Raised when a patch of a chunked upload did not increase the size of
    the upload. The upload cannot continue.
    """

    name: str
    size: int

    def __init__(self, name: str, size: int):
        self.name = name
        self.size = size
        super().__init__(
            f"last patch of document '{name}' uploaded nothing (size={size})"
        )


class UploadStateError(SharebaseError):
    """
    Raised when a document writer is used after it was closed or failed.
    """
