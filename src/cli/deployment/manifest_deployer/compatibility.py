"""Version skew check between kubectl and the target cluster."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from src.infra.constants import DEFAULT_CONSTANTS
from src.infra.errors import IncompatibleVersions
from src.infra.k8s.controller import ClusterController, ToolVersion

if TYPE_CHECKING:
    from src.cli.shared.console import CLIConsole

    from ..shell_commands import KubectlCommands


def verify_version_skew(
    local: ToolVersion,
    cluster: ToolVersion,
    max_skew: int = DEFAULT_CONSTANTS.MAX_MINOR_VERSION_SKEW,
) -> None:
    """Check that the cluster is supported by the local kubectl.

    The majors must match and the cluster's minor must be equal to, or at
    most ``max_skew`` below, the local minor.

    Raises:
        IncompatibleVersions: If the versions are outside the window
    """
    if local.major != cluster.major:
        raise IncompatibleVersions(
            f"Cluster major version {cluster.major} does not match "
            f"kubectl major version {local.major}."
        )

    delta = cluster.minor - local.minor
    if delta > 0 or delta < -max_skew:
        raise IncompatibleVersions(
            "Cluster and kubectl versions are not compatible (kubectl must be the "
            f"same or up to {max_skew} minor versions higher than the cluster). "
            f"Minor version delta: {delta}",
            details=f"kubectl: {local}\ncluster: {cluster}",
        )


class CompatibilityGate:
    """Runs the version check before any mutating operation."""

    def __init__(
        self,
        kubectl: KubectlCommands,
        controller: ClusterController,
        console: CLIConsole,
    ) -> None:
        self.kubectl = kubectl
        self.controller = controller
        self.console = console

    async def check(self) -> tuple[ToolVersion, ToolVersion]:
        """Query both versions and verify the skew.

        Returns:
            Tuple of (kubectl version, cluster version)
        """
        local = await asyncio.to_thread(self.kubectl.client_version)
        cluster = await self.controller.get_server_version()

        self.console.info(f"kubectl client version: {local}")
        self.console.info(f"Cluster version: {cluster}")

        verify_version_skew(local, cluster)
        return local, cluster
