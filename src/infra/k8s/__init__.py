"""Kubernetes infrastructure abstraction layer.

This module provides a small abstraction over the control-plane operations
the deployer needs, implemented with the kr8s library.

Example:
    from src.infra.k8s import Kr8sController, run_sync

    controller = Kr8sController("my-context")
    exists = run_sync(controller.namespace_exists("my-namespace"))
"""

from .controller import ClusterController, ResourceNotFoundError, ToolVersion
from .kr8s_controller import Kr8sController
from .utils import run_sync

__all__ = [
    # Controller classes
    "ClusterController",
    "Kr8sController",
    # Data classes and errors
    "ResourceNotFoundError",
    "ToolVersion",
    # Utilities
    "run_sync",
]
