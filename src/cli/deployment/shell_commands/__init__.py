"""Shell command abstractions for deployment operations.

- kubectl: applying manifests and querying the client version
- runner: subprocess execution with structured results

Usage:
    from src.cli.deployment.shell_commands import CommandRunner, KubectlCommands

    kubectl = KubectlCommands(CommandRunner())
    kubectl.apply(Path("manifests/.tmp"), context="prod", dry_run=True)
"""

from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import CommandResult

__all__ = [
    "CommandResult",
    "CommandRunner",
    "KubectlCommands",
]
