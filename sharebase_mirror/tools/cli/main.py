"""
Entry point of `sharebase-mirror` CLI.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Generator

import dotenv
from click.exceptions import BadParameter, MissingParameter
from pydantic import ValidationError
from typer import Context, Option

from ...core import BaseGateway, ClientPool, PathResolver, Tree, parse_path
from ..config import Config, InstanceConfig
from . import transfer, tree
from ._utils import MainTyper, exit_on_error, get_root_context, logger, lookup_param

dotenv.load_dotenv()


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


app = MainTyper(
    "sharebase-mirror",
    help="ShareBase Mirror CLI Toolkit",
)


@app.callback()
def main(
    ctx: Context,
    data_center: str
    | None = Option(
        None,
        help="Data center URL, e.g. https://app.sharebase.com/sharebasews/",
        envvar="SHAREBASE_DATA_CENTER",
    ),
    token: str
    | None = Option(
        None,
        help="API token",
        envvar="SHAREBASE_TOKEN",
    ),
    username: str
    | None = Option(
        None,
        help="Username, used to create a token if none given",
        envvar="SHAREBASE_USERNAME",
    ),
    password: str
    | None = Option(
        None,
        help="Password, used to create a token if none given",
        envvar="SHAREBASE_PASSWORD",
    ),
    instance_name: str
    | None = Option(
        None,
        "--instance",
        help="Instance name as configured in .yaml",
        envvar="SHAREBASE_INSTANCE",
    ),
    config_file: Path
    | None = Option(
        "sharebase-mirror.yaml",
        help=".yaml file containing instance info, only applicable with --instance",
        envvar="SHAREBASE_CONFIG_FILE",
        dir_okay=False,
    ),
    log_level: LogLevel = Option(
        LogLevel.INFO,
        help="Logging level",
        case_sensitive=False,
    ),
):
    logger.setLevel(log_level.value)

    if instance_name:
        assert config_file is not None
        root_context = RootContext.from_config(
            ctx=ctx, instance_name=instance_name, config_file=config_file
        )
    else:
        if not data_center:
            raise MissingParameter(
                message="either --data-center or --instance must be provided",
                ctx=ctx,
                param_hint=["data-center", "instance"],
                param_type="option",
            )

        if not (token or (username and password)):
            raise MissingParameter(
                message="either --token or --username and --password must be provided",
                ctx=ctx,
                param_hint=["token", "username", "password"],
                param_type="option",
            )

        instance = InstanceConfig(
            data_center=data_center,
            token=token,
            username=username,
            password=password,
        )

        root_context = RootContext(
            ctx=ctx,
            instance=instance,
            from_file=False,
        )

    ctx.obj = root_context


@app.command()
def check(ctx: Context):
    """
    Check ShareBase connection
    """
    root_context = get_root_context(ctx)

    with root_context.client() as client, exit_on_error():
        libraries = client.libraries()

    logger.info(
        f"Connected to data center '{root_context.instance.data_center}', {len(libraries)} libraries accessible"
    )


app.command("ls")(tree.ls)
app.command("mkdir")(tree.mkdir)
app.command("upload")(transfer.upload)
app.command("download")(transfer.download)


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    instance: InstanceConfig
    from_file: bool

    pool: ClientPool = field(init=False)
    """
    Pool from which commands borrow clients.
    """

    tree: Tree = field(init=False)
    """
    Tree mirrored for the duration of the command.
    """

    def __post_init__(self):
        self.pool = self.instance.create_pool(logger=logger)
        self.tree = Tree(logger=logger)

        self.ctx.call_on_close(self.pool.close)

    @classmethod
    def from_config(
        cls,
        *,
        ctx: Context,
        instance_name: str,
        config_file: Path,
    ) -> RootContext:
        # ensure config file exists
        if not config_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {config_file}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get config from file
        try:
            config = Config.load_yaml(config_file)
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load config file '{config_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get instance from config
        instance = config.instances.get(instance_name)
        if not instance:
            raise BadParameter(
                f"instance '{instance_name}' not found in '{config_file}'",
                ctx=ctx,
                param=lookup_param(ctx, "instance_name"),
            )

        return RootContext(ctx=ctx, instance=instance, from_file=True)

    @contextmanager
    def client(self) -> Generator[BaseGateway, None, None]:
        """
        Borrow a client from the pool for the duration of a `with` block.
        """
        with exit_on_error():
            token = self.instance.get_token()

        with self.pool.client(self.instance.data_center, token) as client:
            yield client

    def create_resolver(self, client: BaseGateway) -> PathResolver:
        return PathResolver(self.tree, client, logger=logger)

    def parse_path(self, value: str) -> tuple[str, ...]:
        """
        Parse remote path, expanding `my` to the configured default library.
        """
        return parse_path(
            value, default_library=self.instance.default_library, logger=logger
        )


if __name__ == "__main__":
    app()
