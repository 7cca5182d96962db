"""
ShareBase Mirror: an in-process mirror and CLI toolkit for ShareBase
document stores.
"""

from pyrollup import rollup

from . import core
from .core import *  # noqa

__all__ = rollup(core)

__canonical_children__ = [
    "core",
]
