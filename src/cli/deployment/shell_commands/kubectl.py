"""Kubectl command abstractions.

kubectl is the external apply tool: it applies staged directories and
imported references, and reports the local client version used by the
compatibility gate.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from src.infra.errors import IncompatibleVersions
from src.infra.k8s.controller import ToolVersion

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Tool presence and client version
    - Applying manifest files, directories and URLs
    """

    def __init__(self, runner: CommandRunner, executable: str = "kubectl") -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
            executable: kubectl executable name or path
        """
        self._runner = runner
        self.executable = executable

    # =========================================================================
    # Tool
    # =========================================================================

    def is_available(self) -> bool:
        """Check whether the kubectl executable can be found."""
        return shutil.which(self.executable) is not None

    def client_version(self) -> ToolVersion:
        """Get the version of the local kubectl client.

        Raises:
            IncompatibleVersions: If the version cannot be obtained
        """
        result = self._runner.run(
            [self.executable, "version", "--client", "--output=json"]
        )
        if not result.success:
            raise IncompatibleVersions(
                "Could not obtain kubectl version. Make sure kubectl is available.",
                details=result.stderr or None,
            )
        try:
            info = json.loads(result.stdout)["clientVersion"]
            return ToolVersion.parse(
                info["major"], info["minor"], info.get("gitVersion", "")
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise IncompatibleVersions(
                "Could not parse kubectl version output.", details=result.stdout
            ) from e

    # =========================================================================
    # Apply
    # =========================================================================

    def apply(
        self,
        target: Path | str,
        *,
        context: str,
        dry_run: bool = False,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Apply a manifest file, directory or URL.

        Args:
            target: Path or URL passed to ``kubectl apply -f``
            context: kubeconfig context to apply against
            dry_run: Use ``--dry-run=client`` so nothing is mutated
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with apply status
        """
        cmd = [self.executable, "apply", "-f", str(target), "--context", context]
        if dry_run:
            cmd.append("--dry-run=client")
        return self._runner.run_streaming(cmd, on_output=on_output)
