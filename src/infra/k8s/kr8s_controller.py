"""Kr8s-based implementation of ClusterController.

Uses the kr8s library for native async Kubernetes operations.
"""

from __future__ import annotations

from typing import Any

import kr8s
from kr8s.asyncio.objects import ConfigMap, Namespace
from loguru import logger

from .controller import ClusterController, ResourceNotFoundError, ToolVersion


class Kr8sController(ClusterController):
    """Cluster controller using the kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. When using run_sync() which calls asyncio.run(),
    each call creates a new event loop, making the cached API unusable.
    """

    def __init__(self, context: str | None = None) -> None:
        """Initialize the kr8s controller.

        Args:
            context: kubeconfig context to talk to, or None for the current one
        """
        self.context = context

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client bound to the configured context."""
        return await kr8s.asyncio.api(context=self.context)

    # =========================================================================
    # Cluster
    # =========================================================================

    async def get_server_version(self) -> ToolVersion:
        """Get the Kubernetes version of the target cluster."""
        api = await self._get_api()
        info = await api.version()
        return ToolVersion.parse(
            info.get("major", ""), info.get("minor", ""), info.get("gitVersion", "")
        )

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        api = await self._get_api()
        try:
            await Namespace.get(namespace, api=api)
        except kr8s.NotFoundError:
            return False
        return True

    async def create_namespace(
        self,
        namespace: str,
        *,
        labels: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        """Create a namespace."""
        if dry_run:
            logger.info(f"Dry run: not creating namespace {namespace}")
            return

        api = await self._get_api()
        metadata: dict[str, Any] = {"name": namespace}
        if labels:
            metadata["labels"] = labels
        ns = Namespace(
            {"apiVersion": "v1", "kind": "Namespace", "metadata": metadata}, api=api
        )
        try:
            await ns.create()
        except kr8s.ServerError as e:
            _log_server_error(e)
            raise
        logger.debug(f"Created namespace {namespace}")

    # =========================================================================
    # ConfigMap Operations
    # =========================================================================

    async def get_config_map_data(self, name: str, namespace: str) -> dict[str, str]:
        """Read the data of a ConfigMap."""
        api = await self._get_api()
        try:
            cm = await ConfigMap.get(name, namespace=namespace, api=api)
        except kr8s.NotFoundError as e:
            raise ResourceNotFoundError("ConfigMap", name, namespace) from e
        data: dict[str, str] = cm.raw.get("data") or {}
        return dict(data)

    async def create_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        """Create a ConfigMap holding ``data``."""
        if dry_run:
            logger.info(f"Dry run: not creating configmap {namespace}/{name}")
            return

        api = await self._get_api()
        cm = ConfigMap(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {"name": name, "namespace": namespace},
                "data": data,
            },
            api=api,
        )
        try:
            await cm.create()
        except kr8s.ServerError as e:
            _log_server_error(e)
            raise

    async def replace_config_map(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        *,
        dry_run: bool = False,
    ) -> None:
        """Replace the data of an existing ConfigMap."""
        if dry_run:
            logger.info(f"Dry run: not replacing configmap {namespace}/{name}")
            return

        api = await self._get_api()
        try:
            cm = await ConfigMap.get(name, namespace=namespace, api=api)
        except kr8s.NotFoundError as e:
            raise ResourceNotFoundError("ConfigMap", name, namespace) from e
        try:
            await cm.patch([{"op": "replace", "path": "/data", "value": data}], type="json")
        except kr8s.ServerError as e:
            _log_server_error(e)
            raise


def _log_server_error(error: kr8s.ServerError) -> None:
    """Log the HTTP exchange behind a failed API call."""
    response = getattr(error, "response", None)
    if response is None:
        logger.error(f"Kubernetes API error: {error}")
        return
    request = response.request
    logger.error(f"HTTP {request.method} {request.url}")
    logger.error(f"{response.status_code} : {response.text}")
