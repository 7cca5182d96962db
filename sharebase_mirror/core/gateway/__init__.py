"""
Access to the remote document store.
"""

from pyrollup import rollup

from . import client, gateway, models
from .client import *  # noqa
from .gateway import *  # noqa
from .models import *  # noqa

__all__ = rollup(gateway, client, models)
