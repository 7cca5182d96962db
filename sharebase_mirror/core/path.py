"""
Parsing and formatting of paths to remote and local objects.

Remote paths use forward slashes and an optional `sb:` scheme, e.g.
`sb:my/Documents/test.txt`. The first component `my` is shorthand for the
user's default library.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from logging import Logger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tree.node import BaseNode

__all__ = [
    "PATH_SCHEME",
    "PATH_SEP",
    "DEFAULT_LIBRARY",
    "is_remote_path",
    "parse_path",
    "parse_local_path",
    "clean_name",
    "split_path",
    "format_path",
    "path_of",
]

PATH_SCHEME = "sb:"
"""
Prefix identifying a remote path.
"""

PATH_SEP = "/"
"""
Separator of remote path components.
"""

DEFAULT_LIBRARY = "My Library"
"""
Library which the `my` shorthand expands to unless configured otherwise.
"""

MY_ALIAS = "my"

ALLOWED_PATTERN = re.compile(r"[0-9A-Za-z_.\-+ ]+")
"""
Characters allowed in remote names; anything else is stripped.
"""


def is_remote_path(value: str) -> bool:
    """
    Whether value refers to a remote object.
    """
    return value.startswith(PATH_SCHEME)


def parse_path(
    value: str,
    *,
    default_library: str = DEFAULT_LIBRARY,
    logger: Logger | None = None,
) -> tuple[str, ...]:
    """
    Parse a remote path into its components.

    Disallowed characters are stripped from each component and a warning is
    logged rather than failing.
    """
    logger = logger or logging.getLogger()

    if is_remote_path(value):
        value = value[len(PATH_SCHEME) :]

    value = posixpath.normpath(value) if value else ""
    parts = [p for p in value.split(PATH_SEP) if p and p != "."]

    if parts and parts[0] == MY_ALIAS:
        parts[0] = default_library

    return tuple(clean_name(part, logger=logger) for part in parts)


def clean_name(name: str, *, logger: Logger | None = None) -> str:
    """
    Strip characters not allowed in remote names, logging a warning if any
    were found.
    """
    fixed = "".join(ALLOWED_PATTERN.findall(name))

    if fixed != name:
        (logger or logging.getLogger()).warning(
            f"Invalid name '{name}' changed to '{fixed}'"
        )

    return fixed


def parse_local_path(value: str) -> tuple[str, ...]:
    """
    Parse a local filesystem path into its components, e.g. a member of a
    tar archive.
    """
    value = os.path.normpath(value)
    return tuple(p for p in value.split(os.sep) if p and p != ".")


def split_path(parts: tuple[str, ...]) -> tuple[tuple[str, ...], str]:
    """
    Split path into the path of its parent and its last component.
    """
    if not parts:
        return ((), "")
    return (parts[:-1], parts[-1])


def format_path(parts: tuple[str, ...]) -> str:
    """
    Format components as a remote path string.
    """
    return PATH_SCHEME + PATH_SEP.join(parts)


def path_of(node: BaseNode) -> str:
    """
    Format the remote path of a node.
    """
    return format_path(node.path)
