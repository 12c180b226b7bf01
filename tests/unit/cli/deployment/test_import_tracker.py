"""Unit tests for idempotent imports."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.cli.deployment.manifest_deployer.import_tracker import (
    ConfigMapRecordStore,
    ImportOutcome,
    ImportTracker,
    import_record_name,
)
from src.infra.errors import ImportApplyFailed
from tests.fixtures import FakeClusterController

AUTO_NS = "k8s-deploy-auto"
URL_V1 = "https://example.com/crds-v1.yaml"
URL_V2 = "https://example.com/crds-v2.yaml"


class TestImportRecordName:
    """Tests for deriving record names from import file names."""

    def test_simple_name(self) -> None:
        assert import_record_name("crds") == "import-crds"

    def test_name_is_sanitized(self) -> None:
        assert import_record_name("Cert_Manager CRDs") == "import-cert-manager-crds"

    def test_dots_are_kept(self) -> None:
        assert import_record_name("crds.url") == "import-crds.url"

    def test_trailing_separators_are_stripped(self) -> None:
        assert import_record_name("crds_") == "import-crds"


class TestConfigMapRecordStore:
    """Tests for import records backed by ConfigMaps."""

    @pytest.mark.asyncio
    async def test_missing_record_is_none(self) -> None:
        store = ConfigMapRecordStore(FakeClusterController())

        assert await store.get("import-crds") is None

    @pytest.mark.asyncio
    async def test_create_then_get(self) -> None:
        controller = FakeClusterController()
        store = ConfigMapRecordStore(controller)

        await store.create("import-crds", URL_V1)

        assert controller.config_maps[(AUTO_NS, "import-crds")] == {"path": URL_V1}
        assert await store.get("import-crds") == URL_V1

    @pytest.mark.asyncio
    async def test_record_without_path_key(self) -> None:
        controller = FakeClusterController()
        controller.config_maps[(AUTO_NS, "import-crds")] = {}

        assert await ConfigMapRecordStore(controller).get("import-crds") == ""

    @pytest.mark.asyncio
    async def test_dry_run_does_not_write(self) -> None:
        controller = FakeClusterController()
        store = ConfigMapRecordStore(controller, dry_run=True)

        await store.create("import-crds", URL_V1)

        assert controller.config_maps == {}
        assert controller.calls == [("create_config_map", AUTO_NS, "import-crds")]


class TestImportTracker:
    """Tests for applying imports only when their reference changed."""

    @pytest.fixture
    def controller(self) -> FakeClusterController:
        return FakeClusterController(namespaces={AUTO_NS})

    @pytest.fixture
    def applier(self) -> AsyncMock:
        return AsyncMock(return_value=True)

    @pytest.fixture
    def tracker(
        self, controller: FakeClusterController, applier: AsyncMock
    ) -> ImportTracker:
        return ImportTracker(ConfigMapRecordStore(controller), applier)

    @pytest.mark.asyncio
    async def test_first_apply_creates_record(
        self,
        tracker: ImportTracker,
        controller: FakeClusterController,
        applier: AsyncMock,
    ) -> None:
        outcome = await tracker.apply("crds", URL_V1)

        assert outcome is ImportOutcome.APPLIED
        applier.assert_awaited_once_with(URL_V1)
        assert controller.config_maps[(AUTO_NS, "import-crds")] == {"path": URL_V1}

    @pytest.mark.asyncio
    async def test_unchanged_reference_is_a_noop(
        self,
        tracker: ImportTracker,
        controller: FakeClusterController,
        applier: AsyncMock,
    ) -> None:
        await tracker.apply("crds", URL_V1)
        applier.reset_mock()
        controller.calls.clear()

        outcome = await tracker.apply("crds", URL_V1)

        assert outcome is ImportOutcome.UP_TO_DATE
        applier.assert_not_awaited()
        assert controller.calls == []

    @pytest.mark.asyncio
    async def test_changed_reference_replaces_record(
        self,
        tracker: ImportTracker,
        controller: FakeClusterController,
        applier: AsyncMock,
    ) -> None:
        await tracker.apply("crds", URL_V1)
        controller.calls.clear()

        outcome = await tracker.apply("crds", URL_V2)

        assert outcome is ImportOutcome.APPLIED
        applier.assert_awaited_with(URL_V2)
        assert controller.calls == [("replace_config_map", AUTO_NS, "import-crds")]
        assert controller.config_maps[(AUTO_NS, "import-crds")] == {"path": URL_V2}

    @pytest.mark.asyncio
    async def test_failed_apply_leaves_record_untouched(
        self,
        tracker: ImportTracker,
        controller: FakeClusterController,
        applier: AsyncMock,
    ) -> None:
        await tracker.apply("crds", URL_V1)
        applier.return_value = False

        with pytest.raises(ImportApplyFailed) as excinfo:
            await tracker.apply("crds", URL_V2)

        assert excinfo.value.message == f"Could not apply {URL_V2}"
        assert controller.config_maps[(AUTO_NS, "import-crds")] == {"path": URL_V1}

    @pytest.mark.asyncio
    async def test_failed_first_apply_creates_nothing(
        self,
        tracker: ImportTracker,
        controller: FakeClusterController,
        applier: AsyncMock,
    ) -> None:
        applier.return_value = False

        with pytest.raises(ImportApplyFailed):
            await tracker.apply("crds", URL_V1)

        assert controller.config_maps == {}
