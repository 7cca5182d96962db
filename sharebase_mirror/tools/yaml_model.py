"""
Interface to create models with associated .yaml storage.
"""

import logging
import os
import stat
from pathlib import Path
from typing import ClassVar, Self

import yaml
from pydantic import BaseModel

__all__ = [
    "BaseYamlModel",
]


class BaseYamlModel(BaseModel):
    """
    Base pydantic model which can be loaded from and dumped to a .yaml file.
    """

    private: ClassVar[bool] = False
    """
    Whether the file may contain secrets, in which case it's only made
    accessible to its owner.
    """

    @classmethod
    def load_yaml(cls, file: Path) -> Self:
        """
        Load model from .yaml file.

        :raises ValueError: File doesn't contain a mapping
        """
        if cls.private and file.stat().st_mode & (stat.S_IRWXG | stat.S_IRWXO):
            logging.getLogger().warning(
                f"File '{file}' may contain credentials but is accessible by other users"
            )

        with file.open() as fh:
            model = yaml.safe_load(fh)

        if not isinstance(model, dict):
            raise ValueError(f"expected a mapping, got: {model!r}")

        return cls.model_validate(model)

    def dump_yaml(self, file: Path):
        """
        Dump model to .yaml file, omitting unset optional fields. If the
        model is private, a newly created file is only accessible to its
        owner.
        """
        model = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        model_yaml = yaml.safe_dump(
            model, default_flow_style=False, sort_keys=False
        )

        mode = 0o600 if self.private else 0o666
        fd = os.open(file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)

        with os.fdopen(fd, "w") as fh:
            fh.write(model_yaml)
