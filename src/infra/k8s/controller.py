"""Abstract cluster controller interface.

Defines the control-plane operations the deployer needs, so they can be
implemented with kr8s against a live cluster or faked in tests.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class ToolVersion:
    """Kubernetes version of a client tool or cluster."""

    major: int
    minor: int
    git_version: str = ""

    @classmethod
    def parse(
        cls, major: str | int, minor: str | int, git_version: str = ""
    ) -> ToolVersion:
        """Build a version from API fields such as ``("1", "29+")``.

        Raises:
            ValueError: If major or minor carries no leading digits
        """
        return cls(_leading_int(major), _leading_int(minor), git_version)

    def __str__(self) -> str:
        return self.git_version or f"v{self.major}.{self.minor}"


def _leading_int(value: str | int) -> int:
    if isinstance(value, int):
        return value
    match = re.match(r"\d+", value.strip())
    if match is None:
        raise ValueError(f"Invalid version component: {value!r}")
    return int(match.group(0))


class ResourceNotFoundError(Exception):
    """The requested cluster resource does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind} {name} not found{location}")


# =============================================================================
# Abstract Controller
# =============================================================================


class ClusterController(ABC):
    """Abstract base class for control-plane operations.

    All methods are async. "Not found" is reported as
    ``ResourceNotFoundError`` (or False from ``namespace_exists``); every
    other failure propagates unchanged.
    """

    # =========================================================================
    # Cluster
    # =========================================================================

    @abstractmethod
    async def get_server_version(self) -> ToolVersion:
        """Get the Kubernetes version of the target cluster."""
        ...

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists.

        Args:
            namespace: Namespace to check

        Returns:
            True if the namespace exists, False if it was not found
        """
        ...

    @abstractmethod
    async def create_namespace(
        self,
        namespace: str,
        *,
        labels: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        """Create a namespace.

        Args:
            namespace: Namespace to create
            labels: Optional labels for the namespace
            dry_run: Report the creation without performing it
        """
        ...

    # =========================================================================
    # ConfigMap Operations
    # =========================================================================

    @abstractmethod
    async def get_config_map_data(self, name: str, namespace: str) -> dict[str, str]:
        """Read the data of a ConfigMap.

        Raises:
            ResourceNotFoundError: If the ConfigMap does not exist
        """
        ...

    @abstractmethod
    async def create_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        """Create a ConfigMap holding ``data``."""
        ...

    @abstractmethod
    async def replace_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        """Replace the data of an existing ConfigMap."""
        ...
