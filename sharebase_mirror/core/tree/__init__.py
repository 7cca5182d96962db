"""
Mirrored tree of libraries, folders and documents.
"""

from pyrollup import rollup

from . import children, node, registry, tree
from .children import *  # noqa
from .node import *  # noqa
from .registry import *  # noqa
from .tree import *  # noqa

__all__ = rollup(tree, node, children, registry)
