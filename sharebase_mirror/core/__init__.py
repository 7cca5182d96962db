"""
This module implements the mirrored tree of a ShareBase document store and
the operations on it: path resolution, uploads and pooled clients.
"""

from pyrollup import rollup

from . import exceptions, gateway, path, pool, resolver, tree, types, upload
from .exceptions import *  # noqa
from .gateway import *  # noqa
from .path import *  # noqa
from .pool import *  # noqa
from .resolver import *  # noqa
from .tree import *  # noqa
from .types import *  # noqa
from .upload import *  # noqa

__all__ = rollup(
    tree,
    resolver,
    upload,
    pool,
    gateway,
    path,
    types,
    exceptions,
)

__canonical_children__ = [
    "tree",
    "resolver",
    "upload",
    "pool",
    "gateway",
    "path",
    "types",
    "exceptions",
]
