"""Deployment constants and configuration.

This module centralizes the reserved directory names, namespaces and
other magic strings used while staging and applying manifests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for manifest staging and deployment.

    All attributes are class-level and immutable.
    """

    # Tool-owned namespace hosting import records
    AUTOMATION_NAMESPACE: str = "k8s-deploy-auto"

    # Reserved manifest directory names
    IMPORT_DIR: str = "@import"
    INIT_DIR: str = "@init"
    SECRETS_DIR: str = "@secrets"
    SKIP_PREFIX: str = "."
    STAGING_DIR: str = ".tmp"

    # Variant used when cluster.variant is not set
    DEFAULT_VARIANT: str = "generic"

    # Import record layout
    IMPORT_RECORD_PREFIX: str = "import-"
    IMPORT_RECORD_KEY: str = "path"

    # Manifest documents
    MANIFEST_EXTENSION: str = ".yaml"
    DOCUMENT_SEPARATOR: str = "---"

    # Cluster may lag the local kubectl by at most this many minor versions
    MAX_MINOR_VERSION_SKEW: int = 2

    # ConfigMap names must be valid DNS subdomains
    RESOURCE_NAME_INVALID_CHARS: re.Pattern[str] = re.compile(r"[^a-z0-9.-]+")


class DeploymentPaths:
    """Path resolver for a manifest source directory."""

    def __init__(self, manifests_dir: Path) -> None:
        """Initialize deployment paths.

        Args:
            manifests_dir: Root of the templated manifest tree
        """
        self._manifests_dir = manifests_dir
        self._constants = DEFAULT_CONSTANTS

    @property
    def manifests_dir(self) -> Path:
        """Get path to the manifest source directory."""
        return self._manifests_dir

    @property
    def staging_dir(self) -> Path:
        """Get path to the directory receiving rendered manifests."""
        return self._manifests_dir / self._constants.STAGING_DIR


DEFAULT_CONSTANTS = DeploymentConstants()
