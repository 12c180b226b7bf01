"""CLI command modules.

Commands:
- init: Create a new deployment from a manifest tree
- update: Re-apply a manifest tree to an existing deployment
"""

from .deploy import init, update

__all__ = [
    "init",
    "update",
]
