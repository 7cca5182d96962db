"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import datetime
import logging
import tarfile
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator

from click import Parameter
from rich.console import Console
from rich.logging import RichHandler
from typer import Context, Exit, Typer

from ...core import SharebaseError

if TYPE_CHECKING:
    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=Console(stderr=True),
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("sharebase-mirror")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.obj
    assert isinstance(root_context, RootContext)
    return root_context


def lookup_param(ctx: Context, name: str) -> Parameter:
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param


@contextmanager
def exit_on_error() -> Generator[None, None, None]:
    """
    Log expected errors and exit with a nonzero code instead of printing a
    traceback.
    """
    try:
        yield
    except (SharebaseError, OSError, tarfile.TarError) as e:
        # requests exceptions derive from OSError
        logger.error(f"{type(e).__name__}: {e}")
        raise Exit(code=1)


def format_datetime(dt: datetime.datetime | None) -> str:
    if dt is None:
        return ""
    return dt.strftime(r"%Y-%m-%d %H:%M:%S")
