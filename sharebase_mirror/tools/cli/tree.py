"""
Browsing and creation of remote folders.
"""
from __future__ import annotations

from rich.table import Table
from typer import Argument, Context, Option

from ...core import BaseNode, Document, ParentNode, format_path
from ._utils import console, exit_on_error, format_datetime, get_root_context, logger


def ls(
    ctx: Context,
    path: str = Argument(
        "sb:",
        help="Remote path, e.g. sb:my/Documents; lists libraries if omitted",
    ),
    recursive: bool = Option(
        False,
        "--recursive",
        "-r",
        help="List all descendants breadth-first",
    ),
):
    """
    List a folder, library or document
    """
    root_context = get_root_context(ctx)

    table = Table("Name", "Kind", "Id", "Modified", box=None)

    with root_context.client() as client, exit_on_error():
        resolver = root_context.create_resolver(client)
        node = resolver.resolve(root_context.parse_path(path))

        if not isinstance(node, ParentNode):
            _add_row(table, node, node.name)

        elif recursive:
            base_depth = len(node.path)

            for _, child in root_context.tree.walk(node, client=client):
                _add_row(table, child, "/".join(child.path[base_depth:]))

        else:
            node.refresh(client)

            for child in node.children:
                _add_row(table, child, child.name)

    console.print(table)


def mkdir(
    ctx: Context,
    path: str = Argument(
        help="Remote path of folder, e.g. sb:my/Reports/2024",
    ),
):
    """
    Create a folder and any missing parents
    """
    root_context = get_root_context(ctx)

    with root_context.client() as client, exit_on_error():
        resolver = root_context.create_resolver(client)
        folder = resolver.get_or_create_folder(root_context.parse_path(path))

    logger.info(f"Folder {format_path(folder.path)} has id {folder.id}")


def _add_row(table: Table, node: BaseNode, name: str):
    modified = (
        format_datetime(node.model.date_modified)
        if isinstance(node, Document)
        else ""
    )
    table.add_row(name, node.kind.value, str(node.id), modified)
