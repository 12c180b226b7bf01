"""Stage planning for a manifest source tree.

Turns the directory convention into an ordered list of stages. Planning
only lists directories; rendering, imports and cluster calls happen when
the deployer executes the plan.

Layout::

    manifests/
        @import/        one file per imported reference
        @init/          only processed when initializing
        10-app/
            @secrets/   rendered with secrets allowed (phase 0)
            <variant>/  variant overlay (phase 1)
            *.yaml      base manifests (phase 2)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path

from src.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants
from src.infra.errors import ConfigurationInvalid


class Phase(IntEnum):
    """Position of a staged file within its directory."""

    SECRETS = 0
    VARIANT = 1
    BASE = 2


class StageKind(Enum):
    IMPORT = "import"
    SECRET = "secret"
    VARIANT = "variant"
    BASE = "base"


_KIND_PHASES = {
    StageKind.SECRET: Phase.SECRETS,
    StageKind.VARIANT: Phase.VARIANT,
    StageKind.BASE: Phase.BASE,
}


@dataclass(frozen=True)
class Stage:
    """One unit of work in a deployment plan.

    Attributes:
        kind: What to do with the source file
        order: Index of the top-level directory in processing order
        directory: Name of the top-level directory
        source: File to import or render
        target: Staged output path (None for imports)
        secrets_allowed: Whether ``secrets.`` placeholders may resolve
    """

    kind: StageKind
    order: int
    directory: str
    source: Path
    target: Path | None = None
    secrets_allowed: bool = False


def staged_file_name(
    directory: str,
    phase: Phase,
    file_name: str,
    subdirectory: str | None = None,
    extension: str = DEFAULT_CONSTANTS.MANIFEST_EXTENSION,
) -> str:
    """Build ``<dir>.<phase>[.<subdir>].<file>`` with a normalized extension.

    Lexical order of these names reproduces the intended apply order.
    """
    parts = [directory, str(int(phase))]
    if subdirectory:
        parts.append(subdirectory)
    parts.append(Path(file_name).with_suffix(extension).name)
    return ".".join(parts)


def _sorted_dirs(path: Path) -> list[Path]:
    return sorted((p for p in path.iterdir() if p.is_dir()), key=lambda p: p.name)


def _sorted_files(path: Path) -> list[Path]:
    return sorted((p for p in path.iterdir() if p.is_file()), key=lambda p: p.name)


def plan_stages(
    source: Path,
    staging_dir: Path,
    *,
    initialize: bool,
    variant: str,
    constants: DeploymentConstants = DEFAULT_CONSTANTS,
) -> list[Stage]:
    """Plan the stages for a manifest source directory.

    Args:
        source: Manifest source directory
        staging_dir: Directory that will receive rendered files
        initialize: Whether this run creates the deployment
        variant: Active variant subdirectory name
        constants: Reserved names

    Returns:
        Stages in execution order

    Raises:
        ConfigurationInvalid: If two source files map to the same staged name
    """
    stages: list[Stage] = []
    directories = [
        d
        for d in _sorted_dirs(source)
        if not d.name.startswith(constants.SKIP_PREFIX)
        and (initialize or d.name != constants.INIT_DIR)
    ]

    for order, directory in enumerate(directories):
        if directory.name == constants.IMPORT_DIR:
            stages.extend(
                Stage(StageKind.IMPORT, order, directory.name, file)
                for file in _sorted_files(directory)
            )
            continue

        for subdirectory in _sorted_dirs(directory):
            if subdirectory.name == constants.SECRETS_DIR:
                kind, secrets_allowed = StageKind.SECRET, True
            elif subdirectory.name == variant:
                kind, secrets_allowed = StageKind.VARIANT, False
            else:
                continue

            for file in _sorted_files(subdirectory):
                name = staged_file_name(
                    directory.name,
                    _KIND_PHASES[kind],
                    file.name,
                    subdirectory.name,
                    constants.MANIFEST_EXTENSION,
                )
                stages.append(
                    Stage(
                        kind,
                        order,
                        directory.name,
                        file,
                        staging_dir / name,
                        secrets_allowed,
                    )
                )

        for file in _sorted_files(directory):
            name = staged_file_name(
                directory.name,
                Phase.BASE,
                file.name,
                extension=constants.MANIFEST_EXTENSION,
            )
            stages.append(
                Stage(StageKind.BASE, order, directory.name, file, staging_dir / name)
            )

    _check_unique_targets(stages)
    return stages


def _check_unique_targets(stages: list[Stage]) -> None:
    staged: dict[Path, Path] = {}
    for stage in stages:
        if stage.target is None:
            continue
        first = staged.setdefault(stage.target, stage.source)
        if first != stage.source:
            raise ConfigurationInvalid(
                f"{first} and {stage.source} would both be staged as "
                f"{stage.target.name}. Rename one of them."
            )
