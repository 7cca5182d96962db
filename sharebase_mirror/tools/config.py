"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger
from typing import ClassVar, Self

from pydantic import BaseModel, PrivateAttr, field_validator, model_validator

from ..core import DEFAULT_LIBRARY, Client, ClientPool
from .yaml_model import BaseYamlModel

__all__ = [
    "Config",
    "InstanceConfig",
]


class Config(BaseYamlModel):
    """
    Encapsulates configuration for use in tools.
    """

    private: ClassVar[bool] = True

    instances: dict[str, InstanceConfig]
    """
    Mapping of instance names to configs.
    """


class InstanceConfig(BaseModel):
    """
    Encapsulates connection info for a ShareBase data center.
    """

    data_center: str
    """
    Base URL of data center, e.g. `https://app.sharebase.com/sharebasews/`.
    """

    token: str | None = None
    username: str | None = None
    password: str | None = None

    default_library: str = DEFAULT_LIBRARY
    """
    Library which `my` expands to at the start of a path.
    """

    timeout: float | None = None
    """
    Timeout of each request in seconds.
    """

    _auth_token: str | None = PrivateAttr(default=None)

    @field_validator("data_center")
    def validate_data_center(cls, value: str) -> str:
        if not value:
            raise ValueError("data_center cannot be empty")
        return value

    @model_validator(mode="after")
    def validate_credentials(self) -> Self:
        if not (self.token or (self.username and self.password)):
            raise ValueError(
                "either token or username and password must be provided"
            )
        return self

    def get_token(self) -> str:
        """
        Get API token, authenticating with username and password if no token
        was configured. The result of authenticating is cached.
        """
        if self.token:
            return self.token

        if self._auth_token is None:
            assert self.username and self.password

            auth = Client.authenticate(
                self.data_center,
                self.username,
                self.password,
                timeout=self.timeout,
            )
            self._auth_token = auth.token

        return self._auth_token

    def create_pool(self, *, logger: Logger | None = None) -> ClientPool:
        """
        Get a pool creating clients with this instance's timeout.
        """

        def factory(data_center: str, token: str) -> Client:
            return Client(
                data_center, token, timeout=self.timeout, logger=logger
            )

        return ClientPool(factory, logger=logger)
