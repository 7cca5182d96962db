"""
Basic types shared across the core: object kinds and size units.
"""

from enum import Enum

from rich.markup import escape

__all__ = [
    "Kind",
    "KIB",
    "MIB",
    "SMALL_FILE_CUTOFF",
    "PATCH_SIZE",
]


class Kind(Enum):
    """
    Kind of ShareBase object.

    Integer ids are only unique among objects of the same kind, so any
    lookup by id must be qualified by a kind.
    """

    LIBRARY = "Library"
    """Top-level collection of folders"""

    FOLDER = "Folder"
    """Folder nested in a library or another folder"""

    DOCUMENT = "Document"
    """Document stored in a folder"""

    def __str__(self) -> str:
        color_map = {
            Kind.LIBRARY: "bright_magenta",
            Kind.FOLDER: "bright_blue",
            Kind.DOCUMENT: "bright_green",
        }

        start = escape("[")
        end = escape("]")
        return f"{start}[{color_map[self]}]{self.value}[/{color_map[self]}]{end}"


KIB = 1 << 10
"""Kibibyte"""

MIB = 1 << 20
"""Mebibyte"""

SMALL_FILE_CUTOFF = 5 * MIB
"""
Size under which the single-request upload is used; documents at or above
this size are uploaded in patches.
"""

PATCH_SIZE = 512 * KIB
"""
Size of each patch of a chunked upload. The remote recommends 512K and
rejects patches above 2M.
"""
