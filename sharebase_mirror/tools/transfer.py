"""
Copying of files and directories between the local filesystem and a
ShareBase tree.
"""
from __future__ import annotations

import logging
import tarfile
from dataclasses import dataclass
from logging import Logger
from pathlib import Path
from typing import BinaryIO

from ..core import (
    BaseGateway,
    Document,
    Folder,
    ParentNode,
    PathResolver,
    clean_name,
    format_path,
    parse_local_path,
    split_path,
    upload_document,
)

__all__ = [
    "TransferStats",
    "upload_file",
    "upload_dir",
    "upload_tar",
    "download_document",
    "download_folder",
]


@dataclass(kw_only=True)
class TransferStats:
    """
    Encapsulates statistics for an upload or download.
    """

    document_count: int = 0
    """
    Number of documents transferred.
    """

    folder_count: int = 0
    """
    Number of folders visited, whether or not they had to be created.
    """

    byte_count: int = 0
    """
    Number of bytes transferred, if known.
    """


def upload_file(
    client: BaseGateway,
    source: Path,
    folder: Folder,
    name: str,
    *,
    logger: Logger | None = None,
) -> TransferStats:
    """
    Upload a single local file as a new document.
    """
    logger = logger or logging.getLogger()
    size = source.stat().st_size

    logger.info(f"Uploading '{source}' to {format_path(folder.path + (name,))}")

    with source.open("rb") as fh:
        upload_document(client, folder, name, fh, size=size, logger=logger)

    return TransferStats(document_count=1, byte_count=size)


def upload_dir(
    resolver: PathResolver,
    client: BaseGateway,
    source: Path,
    origin: ParentNode,
    name: str,
    *,
    logger: Logger | None = None,
) -> TransferStats:
    """
    Upload a local directory into a folder named `name` in `origin`, creating
    remote folders as needed. Subdirectories are visited iteratively, so
    depth is not limited by the stack.
    """
    assert source.is_dir()

    logger = logger or logging.getLogger()
    stats = TransferStats()

    stack: list[tuple[Path, Folder]] = [
        (source, resolver.get_or_create_folder((name,), origin))
    ]

    while stack:
        local_dir, folder = stack.pop()
        stats.folder_count += 1

        for entry in sorted(local_dir.iterdir()):
            entry_name = clean_name(entry.name, logger=logger)

            if entry.is_dir():
                subfolder = resolver.get_or_create_folder((entry_name,), folder)
                stack.append((entry, subfolder))
            elif entry.is_file():
                file_stats = upload_file(
                    client, entry, folder, entry_name, logger=logger
                )
                stats.document_count += file_stats.document_count
                stats.byte_count += file_stats.byte_count
            else:
                logger.warning(f"Skipping '{entry}': not a regular file")

    return stats


def upload_tar(
    resolver: PathResolver,
    client: BaseGateway,
    source: BinaryIO,
    origin: ParentNode,
    name: str,
    *,
    logger: Logger | None = None,
) -> TransferStats:
    """
    Extract a tar stream into a folder named `name` in `origin`. The stream
    is read sequentially, so it may be a pipe.
    """
    logger = logger or logging.getLogger()
    stats = TransferStats()

    folder = resolver.get_or_create_folder((name,), origin)

    with tarfile.open(fileobj=source, mode="r|*") as tar:
        for member in tar:
            parts = tuple(
                clean_name(p, logger=logger)
                for p in parse_local_path(member.name)
            )

            if not parts:
                continue

            if member.isdir():
                resolver.get_or_create_folder(parts, folder)
                stats.folder_count += 1

            elif member.isfile():
                dir_parts, base = split_path(parts)
                target = resolver.get_or_create_folder(dir_parts, folder)

                fh = tar.extractfile(member)
                assert fh is not None

                logger.info(
                    f"Uploading '{member.name}' to {format_path(target.path + (base,))}"
                )
                upload_document(
                    client, target, base, fh, size=member.size, logger=logger
                )

                stats.document_count += 1
                stats.byte_count += member.size

            else:
                logger.warning(
                    f"Skipping tar member '{member.name}': not a regular file or directory"
                )

    return stats


def download_document(
    client: BaseGateway,
    document: Document,
    target: BinaryIO,
) -> int:
    """
    Write a document's content to a binary stream.

    :returns: Number of bytes written
    """
    count = 0

    with document.content(client) as content:
        for chunk in content:
            target.write(chunk)
            count += len(chunk)

    return count


def download_folder(
    client: BaseGateway,
    source: ParentNode,
    target_dir: Path,
    *,
    overwrite: bool = False,
    logger: Logger | None = None,
) -> TransferStats:
    """
    Download a folder or library breadth-first into an existing local
    directory, refreshing each folder on the way.

    :raises FileExistsError: A document's target file exists and `overwrite` is not set
    """
    assert target_dir.is_dir()

    logger = logger or logging.getLogger()
    stats = TransferStats()
    base_depth = len(source.path)

    for _, child in source.tree.walk(source, client=client):
        path = target_dir.joinpath(*child.path[base_depth:])

        if isinstance(child, ParentNode):
            path.mkdir(exist_ok=True)
            stats.folder_count += 1

        elif isinstance(child, Document):
            if path.exists() and not overwrite:
                raise FileExistsError(
                    f"refusing to overwrite existing file '{path}'"
                )

            logger.info(f"Downloading {format_path(child.path)} to '{path}'")

            with path.open("wb") as fh:
                stats.byte_count += download_document(client, child, fh)

            stats.document_count += 1

    return stats
