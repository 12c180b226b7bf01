"""Idempotent application of imported manifest references.

Each file in the ``@import`` directory holds one reference (typically a
URL) that is applied with kubectl. The last applied reference is recorded
in a ConfigMap in the automation namespace, so a reference is only
re-applied when it changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum

from loguru import logger

from src.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants
from src.infra.errors import ImportApplyFailed
from src.infra.k8s.controller import ClusterController, ResourceNotFoundError


class ImportOutcome(Enum):
    APPLIED = "applied"
    UP_TO_DATE = "up_to_date"


class ImportRecordStore(ABC):
    """Key/value store for the last applied reference of each import."""

    @abstractmethod
    async def get(self, name: str) -> str | None:
        """Return the stored reference, or None when no record exists."""
        ...

    @abstractmethod
    async def create(self, name: str, reference: str) -> None: ...

    @abstractmethod
    async def replace(self, name: str, reference: str) -> None: ...


class ConfigMapRecordStore(ImportRecordStore):
    """Import records kept as ConfigMaps in the automation namespace."""

    def __init__(
        self,
        controller: ClusterController,
        namespace: str = DEFAULT_CONSTANTS.AUTOMATION_NAMESPACE,
        *,
        dry_run: bool = False,
        key: str = DEFAULT_CONSTANTS.IMPORT_RECORD_KEY,
    ) -> None:
        self.controller = controller
        self.namespace = namespace
        self.dry_run = dry_run
        self.key = key

    async def get(self, name: str) -> str | None:
        try:
            data = await self.controller.get_config_map_data(name, self.namespace)
        except ResourceNotFoundError:
            logger.debug(f"No import record {self.namespace}/{name}")
            return None
        return data.get(self.key, "")

    async def create(self, name: str, reference: str) -> None:
        await self.controller.create_config_map(
            name, self.namespace, {self.key: reference}, dry_run=self.dry_run
        )

    async def replace(self, name: str, reference: str) -> None:
        await self.controller.replace_config_map(
            name, self.namespace, {self.key: reference}, dry_run=self.dry_run
        )


def import_record_name(
    file_name: str, constants: DeploymentConstants = DEFAULT_CONSTANTS
) -> str:
    """Derive a valid ConfigMap name from an import file name."""
    slug = constants.RESOURCE_NAME_INVALID_CHARS.sub("-", file_name.lower())
    return (constants.IMPORT_RECORD_PREFIX + slug).strip(".-")


class ImportTracker:
    """Applies imports only when their reference changed."""

    def __init__(
        self,
        store: ImportRecordStore,
        applier: Callable[[str], Awaitable[bool]],
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Record store for applied references
            applier: Coroutine function applying a reference, returning
                whether the apply succeeded
        """
        self.store = store
        self.applier = applier

    async def apply(self, import_name: str, import_reference: str) -> ImportOutcome:
        """Apply an import unless its recorded reference is unchanged.

        Args:
            import_name: Name of the import file
            import_reference: Reference to apply (URL or path)

        Returns:
            ImportOutcome.UP_TO_DATE if nothing was done, APPLIED otherwise

        Raises:
            ImportApplyFailed: If the external apply failed; the record is
                left untouched
        """
        record_name = import_record_name(import_name)
        current = await self.store.get(record_name)
        if current == import_reference:
            return ImportOutcome.UP_TO_DATE

        if not await self.applier(import_reference):
            raise ImportApplyFailed(f"Could not apply {import_reference}")

        if current is None:
            await self.store.create(record_name, import_reference)
        else:
            await self.store.replace(record_name, import_reference)
        logger.debug(f"Recorded {import_reference} as {record_name}")
        return ImportOutcome.APPLIED
