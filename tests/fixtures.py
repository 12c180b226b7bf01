"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.cli.deployment.shell_commands.types import CommandResult
from src.infra.k8s.controller import (
    ClusterController,
    ResourceNotFoundError,
    ToolVersion,
)
from src.templating.config_tree import ConfigTree


class FakeClusterController(ClusterController):
    """In-memory control plane recording every mutating call."""

    def __init__(
        self,
        namespaces: set[str] | None = None,
        version: ToolVersion | None = None,
    ) -> None:
        self.namespaces: set[str] = set(namespaces or ())
        self.config_maps: dict[tuple[str, str], dict[str, str]] = {}
        self.version = version or ToolVersion(1, 29, "v1.29.2")
        self.calls: list[tuple[str, ...]] = []

    async def get_server_version(self) -> ToolVersion:
        return self.version

    async def namespace_exists(self, namespace: str) -> bool:
        return namespace in self.namespaces

    async def create_namespace(
        self,
        namespace: str,
        *,
        labels: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.calls.append(("create_namespace", namespace))
        if not dry_run:
            self.namespaces.add(namespace)

    async def get_config_map_data(self, name: str, namespace: str) -> dict[str, str]:
        try:
            return dict(self.config_maps[(namespace, name)])
        except KeyError:
            raise ResourceNotFoundError("ConfigMap", name, namespace) from None

    async def create_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        self.calls.append(("create_config_map", namespace, name))
        if not dry_run:
            self.config_maps[(namespace, name)] = dict(data)

    async def replace_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        self.calls.append(("replace_config_map", namespace, name))
        if (namespace, name) not in self.config_maps:
            raise ResourceNotFoundError("ConfigMap", name, namespace)
        if not dry_run:
            self.config_maps[(namespace, name)] = dict(data)


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) below ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def values_tree() -> ConfigTree:
    """Values used by most templating tests."""
    return ConfigTree(
        {
            "deployment": "demo",
            "cluster": {"context": "c1", "variant": "prod"},
            "app": {
                "replicas": 3,
                "debug": False,
                "ratio": 0.5,
                "empty": "",
                "hosts": ["a.example.com", "b.example.com"],
                "labels": {"tier": "web"},
            },
        }
    )


@pytest.fixture
def secrets_tree() -> ConfigTree:
    return ConfigTree({"db": {"password": "s3cr3t"}, "token": "abc"})


@pytest.fixture
def fake_controller() -> FakeClusterController:
    return FakeClusterController()


@pytest.fixture
def mock_kubectl() -> MagicMock:
    """kubectl wrapper whose applies succeed and version matches the fake cluster."""
    kubectl = MagicMock()
    kubectl.client_version.return_value = ToolVersion(1, 30, "v1.30.0")
    kubectl.apply.return_value = CommandResult(success=True)
    return kubectl


@pytest.fixture
def mock_console() -> MagicMock:
    """Create a mock CLI console."""
    return MagicMock()
