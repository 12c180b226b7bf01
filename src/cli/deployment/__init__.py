"""Deployment module for templated Kubernetes manifests.

The package is organized into subpackages for modularity:
- shell_commands: kubectl and subprocess abstractions
- manifest_deployer: staging, imports and the deployment run
"""

from src.infra.errors import DeploymentError

from .manifest_deployer import DeploymentMode, ManifestDeployer

__all__ = ["DeploymentError", "DeploymentMode", "ManifestDeployer"]
