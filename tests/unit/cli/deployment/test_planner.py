"""Unit tests for stage planning."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.cli.deployment.manifest_deployer.planner import (
    Phase,
    StageKind,
    plan_stages,
    staged_file_name,
)
from src.infra.errors import ConfigurationInvalid
from tests.fixtures import write_files


class TestStagedFileName:
    """Tests for staged file naming."""

    def test_base_file(self) -> None:
        assert staged_file_name("10-app", Phase.BASE, "deploy.yaml") == (
            "10-app.2.deploy.yaml"
        )

    def test_with_subdirectory(self) -> None:
        name = staged_file_name("10-app", Phase.VARIANT, "extra.yaml", "prod")
        assert name == "10-app.1.prod.extra.yaml"

    def test_extension_is_normalized(self) -> None:
        name = staged_file_name("10-app", Phase.SECRETS, "db.yml", "@secrets")
        assert name == "10-app.0.@secrets.db.yaml"
        assert staged_file_name("10-app", Phase.BASE, "deploy") == "10-app.2.deploy.yaml"

    def test_names_sort_in_phase_order(self) -> None:
        names = [
            staged_file_name("10-app", Phase.BASE, "a.yaml"),
            staged_file_name("10-app", Phase.VARIANT, "z.yaml", "prod"),
            staged_file_name("10-app", Phase.SECRETS, "m.yaml", "@secrets"),
        ]
        assert sorted(names) == list(reversed(names))


class TestPlanStages:
    """Tests for turning a manifest tree into ordered stages."""

    def test_full_layout(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path / "manifests",
            {
                "@import/crds": "https://example.com/crds.yaml",
                "@init/ns.yaml": "a: 1",
                "10-app/deploy.yaml": "a: 1",
                "10-app/prod/extra.yaml": "a: 1",
                "10-app/dev/ignored.yaml": "a: 1",
                "10-app/@secrets/db.yaml": "a: 1",
                ".hidden/skip.yaml": "a: 1",
                "README.md": "top-level files are ignored",
            },
        )
        staging = source / ".tmp"

        stages = plan_stages(source, staging, initialize=True, variant="prod")

        assert [(s.kind, s.directory, s.source.name) for s in stages] == [
            (StageKind.SECRET, "10-app", "db.yaml"),
            (StageKind.VARIANT, "10-app", "extra.yaml"),
            (StageKind.BASE, "10-app", "deploy.yaml"),
            (StageKind.IMPORT, "@import", "crds"),
            (StageKind.BASE, "@init", "ns.yaml"),
        ]
        targets = [s.target.name for s in stages if s.target is not None]
        assert targets == [
            "10-app.0.@secrets.db.yaml",
            "10-app.1.prod.extra.yaml",
            "10-app.2.deploy.yaml",
            "@init.2.ns.yaml",
        ]
        assert all(s.target.parent == staging for s in stages if s.target)

    def test_only_secrets_allow_secrets(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path,
            {
                "10-app/deploy.yaml": "a: 1",
                "10-app/@secrets/db.yaml": "a: 1",
                "10-app/generic/extra.yaml": "a: 1",
            },
        )

        stages = plan_stages(source, tmp_path / ".tmp", initialize=False, variant="generic")

        allowed = {s.source.name: s.secrets_allowed for s in stages}
        assert allowed == {"db.yaml": True, "extra.yaml": False, "deploy.yaml": False}

    def test_init_directory_skipped_on_update(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path, {"@init/ns.yaml": "a: 1", "10-app/deploy.yaml": "a: 1"}
        )

        stages = plan_stages(source, tmp_path / ".tmp", initialize=False, variant="generic")

        assert [s.directory for s in stages] == ["10-app"]

    def test_directories_processed_in_name_order(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path,
            {
                "20-db/a.yaml": "a: 1",
                "10-app/b.yaml": "a: 1",
                "30-web/c.yaml": "a: 1",
            },
        )

        stages = plan_stages(source, tmp_path / ".tmp", initialize=False, variant="generic")

        assert [(s.order, s.directory) for s in stages] == [
            (0, "10-app"),
            (1, "20-db"),
            (2, "30-web"),
        ]

    def test_staging_directory_is_not_a_source(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path, {".tmp/10-app.2.old.yaml": "a: 1", "10-app/a.yaml": "a: 1"}
        )

        stages = plan_stages(source, tmp_path / ".tmp", initialize=True, variant="generic")

        assert [s.source.name for s in stages] == ["a.yaml"]

    def test_empty_tree(self, tmp_path: Path) -> None:
        assert plan_stages(tmp_path, tmp_path / ".tmp", initialize=True, variant="x") == []


class TestStagedNameCollisions:
    """Two sources must never be staged under the same name."""

    def test_yaml_and_yml_variants_collide(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path, {"10-app/deploy.yaml": "a: 1", "10-app/deploy.yml": "a: 2"}
        )

        with pytest.raises(ConfigurationInvalid) as excinfo:
            plan_stages(source, tmp_path / ".tmp", initialize=False, variant="generic")

        assert "deploy.yaml" in excinfo.value.message
        assert "deploy.yml" in excinfo.value.message

    def test_other_extensions_collide(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path,
            {"10-app/prod/cfg.v1": "a: 1", "10-app/prod/cfg.v2": "a: 2"},
        )

        with pytest.raises(ConfigurationInvalid):
            plan_stages(source, tmp_path / ".tmp", initialize=False, variant="prod")

    def test_same_name_in_different_phases_is_allowed(self, tmp_path: Path) -> None:
        source = write_files(
            tmp_path,
            {
                "10-app/deploy.yaml": "a: 1",
                "10-app/prod/deploy.yaml": "a: 2",
                "10-app/@secrets/deploy.yaml": "a: 3",
            },
        )

        stages = plan_stages(source, tmp_path / ".tmp", initialize=False, variant="prod")

        assert len({s.target for s in stages}) == 3
