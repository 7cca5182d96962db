"""
Upload and download between local paths and ShareBase.
"""
from __future__ import annotations

from pathlib import Path

import click
from click import BadParameter
from typer import Argument, Context, Option

from ...core import (
    ChildNotFoundError,
    Document,
    Folder,
    Kind,
    ParentNode,
    UnexpectedKindError,
    clean_name,
    format_path,
    upload_document,
)
from ..transfer import (
    TransferStats,
    download_document,
    download_folder,
    upload_dir,
    upload_file,
    upload_tar,
)
from ._utils import exit_on_error, get_root_context, logger, lookup_param

STDIO = "-"


def upload(
    ctx: Context,
    source: str = Argument(
        help="Local file or directory, or - to read from stdin",
    ),
    target: str = Argument(
        help="Remote path, e.g. sb:my/Reports/report.pdf; if it's an existing folder, the source is placed inside it",
    ),
    untar: bool = Option(
        False,
        "--untar",
        "-u",
        help="Extract source as a tar archive into the target folder",
    ),
):
    """
    Upload a file, directory or tar archive
    """
    root_context = get_root_context(ctx)

    parts = root_context.parse_path(target)
    if len(parts) < 2:
        raise BadParameter(
            "target must include a library and a name",
            ctx=ctx,
            param=lookup_param(ctx, "target"),
        )

    local_path: Path | None = None

    if source != STDIO:
        local_path = Path(source)

        if not local_path.exists():
            raise BadParameter(
                f"path does not exist: '{local_path}'",
                ctx=ctx,
                param=lookup_param(ctx, "source"),
            )

        if local_path.is_dir() and untar:
            raise BadParameter(
                "cannot untar a directory",
                ctx=ctx,
                param=lookup_param(ctx, "source"),
            )

    with root_context.client() as client, exit_on_error():
        resolver = root_context.create_resolver(client)
        parent, name = resolver.resolve_parent(parts)

        # uploading onto an existing folder places the source inside it
        if local_path is not None:
            try:
                existing = resolver.resolve((name,), parent)
            except ChildNotFoundError:
                existing = None

            if isinstance(existing, ParentNode):
                parent = existing
                name = clean_name(local_path.name, logger=logger)

        if local_path is None:
            stdin = click.get_binary_stream("stdin")

            if untar:
                stats = upload_tar(
                    resolver, client, stdin, parent, name, logger=logger
                )
            else:
                folder = _require_folder(parent)
                upload_document(client, folder, name, stdin, logger=logger)
                stats = TransferStats(document_count=1)

        elif local_path.is_dir():
            stats = upload_dir(
                resolver, client, local_path, parent, name, logger=logger
            )

        elif untar:
            with local_path.open("rb") as fh:
                stats = upload_tar(
                    resolver, client, fh, parent, name, logger=logger
                )

        else:
            stats = upload_file(
                client, local_path, _require_folder(parent), name, logger=logger
            )

    logger.info(
        f"Uploaded {stats.document_count} documents, {stats.byte_count} bytes"
    )


def download(
    ctx: Context,
    source: str = Argument(
        help="Remote path of document or folder",
    ),
    target: str = Argument(
        STDIO,
        help="Local file or directory, or - to write a document to stdout",
    ),
    overwrite: bool = Option(
        False,
        "--overwrite",
        help="Overwrite existing local files",
    ),
):
    """
    Download a document or folder
    """
    root_context = get_root_context(ctx)

    parts = root_context.parse_path(source)
    if not parts:
        raise BadParameter(
            "source must include at least a library",
            ctx=ctx,
            param=lookup_param(ctx, "source"),
        )

    with root_context.client() as client, exit_on_error():
        resolver = root_context.create_resolver(client)
        node = resolver.resolve(parts)

        if isinstance(node, Document):
            if target == STDIO:
                count = download_document(
                    client, node, click.get_binary_stream("stdout")
                )
            else:
                path = Path(target)
                if path.is_dir():
                    path /= node.name

                if path.exists() and not overwrite:
                    raise FileExistsError(
                        f"refusing to overwrite existing file '{path}'"
                    )

                with path.open("wb") as fh:
                    count = download_document(client, node, fh)

            stats = TransferStats(document_count=1, byte_count=count)

        else:
            assert isinstance(node, ParentNode)

            if target == STDIO:
                raise BadParameter(
                    f"{format_path(node.path)} is a {node.kind.value.lower()}; target must be a directory",
                    ctx=ctx,
                    param=lookup_param(ctx, "target"),
                )

            path = Path(target)
            if path.exists() and not path.is_dir():
                raise FileExistsError(f"target is not a directory: '{path}'")

            path.mkdir(parents=True, exist_ok=True)

            stats = download_folder(
                client, node, path, overwrite=overwrite, logger=logger
            )

    logger.info(
        f"Downloaded {stats.document_count} documents, {stats.byte_count} bytes"
    )


def _require_folder(parent: ParentNode) -> Folder:
    if not isinstance(parent, Folder):
        raise UnexpectedKindError(Kind.FOLDER, parent)
    return parent
