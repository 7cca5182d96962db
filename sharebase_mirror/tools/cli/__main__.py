"""
Entry point of `sharebase-mirror` CLI when run as
`python -m sharebase_mirror.tools.cli`.
"""

from .main import run

run()
