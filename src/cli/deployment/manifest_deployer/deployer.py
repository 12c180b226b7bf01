"""Phased manifest deployment.

This module provides the ManifestDeployer class which drives one
deployment run through its states:

1. Check kubectl/cluster version compatibility
2. Ensure the deployment namespace matches the mode (create on init)
3. Ensure the automation namespace holding import records exists
4. Stage the manifest tree: imports, secrets, variant overlay, base files
5. Apply the staging directory with a single kubectl apply

Any failure moves the run to FAILED and propagates to the caller.
"""

from __future__ import annotations

import asyncio
import shutil
from enum import Enum
from pathlib import Path

from loguru import logger
from rich.markup import escape

from src.config.settings import DeploymentSettings
from src.infra.constants import DEFAULT_CONSTANTS, DeploymentConstants, DeploymentPaths
from src.infra.errors import (
    BulkApplyFailed,
    ConfigurationInvalid,
    DeploymentCancelled,
    NamespaceStateMismatch,
    SecretsForbidden,
    UnknownPlaceholderKey,
)
from src.infra.k8s.controller import ClusterController
from src.templating.pipeline import DocumentPipeline

from ...shared.console import CLIConsole
from ..shell_commands import KubectlCommands
from .compatibility import CompatibilityGate
from .import_tracker import (
    ConfigMapRecordStore,
    ImportOutcome,
    ImportRecordStore,
    ImportTracker,
)
from .planner import Stage, StageKind, plan_stages


class DeploymentMode(Enum):
    INITIALIZE = "init"
    UPDATE = "update"


class RunState(Enum):
    START = "start"
    COMPATIBILITY_CHECKED = "compatibility_checked"
    NAMESPACE_ENSURED = "namespace_ensured"
    AUTOMATION_NAMESPACE_ENSURED = "automation_namespace_ensured"
    STAGED = "staged"
    APPLIED = "applied"
    DONE = "done"
    FAILED = "failed"


class ManifestDeployer:
    """Deploys a templated manifest tree to one cluster context.

    Attributes:
        settings: Validated deployment settings
        pipeline: Document pipeline holding values and secrets
        controller: Control-plane client
        kubectl: External apply tool
        console: Console for progress narration
        mode: Initialization or update
        dry_run: Whether mutations are suppressed
        state: Current run state
    """

    def __init__(
        self,
        settings: DeploymentSettings,
        pipeline: DocumentPipeline,
        controller: ClusterController,
        kubectl: KubectlCommands,
        console: CLIConsole,
        *,
        mode: DeploymentMode,
        manifests_dir: Path,
        dry_run: bool = False,
        cancel_event: asyncio.Event | None = None,
        record_store: ImportRecordStore | None = None,
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            settings: Validated deployment settings
            pipeline: Document pipeline for rendering templates
            controller: Control-plane client
            kubectl: kubectl command wrapper used for applies
            console: Console for progress narration
            mode: Initialization or update
            manifests_dir: Root of the templated manifest tree
            dry_run: Suppress cluster mutations
            cancel_event: Optional event that cancels the run when set
            record_store: Import record store (defaults to ConfigMaps in
                the automation namespace)
            constants: Optional deployment constants (uses defaults if not provided)
        """
        self.settings = settings
        self.pipeline = pipeline
        self.controller = controller
        self.kubectl = kubectl
        self.console = console
        self.mode = mode
        self.dry_run = dry_run
        self.cancel_event = cancel_event
        self.constants = constants or DEFAULT_CONSTANTS
        self.paths = DeploymentPaths(manifests_dir)

        self.compatibility = CompatibilityGate(kubectl, controller, console)
        self.imports = ImportTracker(
            record_store
            or ConfigMapRecordStore(
                controller, self.constants.AUTOMATION_NAMESPACE, dry_run=dry_run
            ),
            self._apply_reference,
        )
        self.state = RunState.START

    @property
    def initialize(self) -> bool:
        return self.mode is DeploymentMode.INITIALIZE

    @property
    def context(self) -> str:
        return self.settings.cluster.context

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self) -> int:
        """Execute the deployment.

        Returns:
            0 on success

        Raises:
            DeploymentError: On any fatal condition; the state is FAILED
        """
        try:
            self._check_cancelled()
            await self.compatibility.check()
            self._transition(RunState.COMPATIBILITY_CHECKED)

            self._check_cancelled()
            await self._ensure_deployment_namespace()
            self._transition(RunState.NAMESPACE_ENSURED)

            self._check_cancelled()
            await self._ensure_automation_namespace()
            self._transition(RunState.AUTOMATION_NAMESPACE_ENSURED)

            await self._stage()
            self._transition(RunState.STAGED)

            self._check_cancelled()
            await self._apply_staged()
            self._transition(RunState.APPLIED)
        except BaseException:
            self.state = RunState.FAILED
            raise

        suffix = " (dry run)" if self.dry_run else ""
        self.console.ok(f"Cluster configuration completed{suffix}")
        self._transition(RunState.DONE)
        return 0

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Deployment state {self.state.value} -> {state.value}")
        self.state = state

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise DeploymentCancelled(
                "Deployment cancelled.",
                details=f"Staged files, if any, are left in {self.paths.staging_dir}",
            )

    # =========================================================================
    # Namespaces
    # =========================================================================

    async def _ensure_deployment_namespace(self) -> None:
        namespace = self.settings.deployment
        exists = await self.controller.namespace_exists(namespace)

        if self.initialize:
            if exists:
                raise NamespaceStateMismatch(
                    f"{namespace} namespace exists. "
                    "Use k8s-deploy update to update the deployment."
                )
            self.console.info(f"Creating namespace {namespace}")
            await self.controller.create_namespace(
                namespace, labels={"name": namespace}, dry_run=self.dry_run
            )
        elif not exists:
            raise NamespaceStateMismatch(
                f"{namespace} namespace does not exist. This cluster does not "
                "contain this deployment. Use k8s-deploy init to get started."
            )

    async def _ensure_automation_namespace(self) -> None:
        namespace = self.constants.AUTOMATION_NAMESPACE
        if await self.controller.namespace_exists(namespace):
            return
        self.console.info(f"{namespace} namespace does not exist. Creating.")
        await self.controller.create_namespace(namespace, dry_run=self.dry_run)

    # =========================================================================
    # Staging
    # =========================================================================

    def _reset_staging_dir(self) -> Path:
        staging_dir = self.paths.staging_dir
        try:
            if staging_dir.exists():
                shutil.rmtree(staging_dir)
            staging_dir.mkdir(parents=True)
        except OSError as e:
            raise ConfigurationInvalid(
                f"Could not clear staging directory {staging_dir}", details=str(e)
            ) from e
        return staging_dir

    async def _stage(self) -> None:
        staging_dir = self._reset_staging_dir()
        stages = plan_stages(
            self.paths.manifests_dir,
            staging_dir,
            initialize=self.initialize,
            variant=self.settings.cluster.variant,
            constants=self.constants,
        )

        current_directory: str | None = None
        for stage in stages:
            self._check_cancelled()
            if stage.directory != current_directory:
                current_directory = stage.directory
                self.console.print_subheader(f"Processing directory {stage.directory}")

            if stage.kind is StageKind.IMPORT:
                await self._process_import(stage)
            elif stage.kind is StageKind.SECRET:
                self._process_secret(stage)
            else:
                self._process_file(stage)

    async def _process_import(self, stage: Stage) -> None:
        self.console.step(f"Processing import {stage.source.name}")
        reference = stage.source.read_text(encoding="utf-8").strip()
        if not reference:
            self.console.warn(f"Import {stage.source.name} is empty, skipping.")
            return

        outcome = await self.imports.apply(stage.source.name, reference)
        if outcome is ImportOutcome.UP_TO_DATE:
            self.console.step(f"{stage.source.name} is up to date.")
        else:
            self.console.step(f"Imported {reference}")

    def _render(self, stage: Stage) -> Path:
        if stage.target is None:
            raise ValueError(f"Stage for {stage.source} has no staging target")
        return self.pipeline.transform(
            stage.source, stage.target, secrets_allowed=stage.secrets_allowed
        )

    def _process_secret(self, stage: Stage) -> None:
        self.console.step(f"Processing secret {stage.source.name}")
        try:
            self._render(stage)
        except (UnknownPlaceholderKey, SecretsForbidden) as e:
            if self.initialize:
                raise
            # Secrets were verified at initialization; they may be absent now
            self.console.warn(f"Skipping secret {stage.source.name}: {e.message}")
            logger.warning(f"Skipped secret {stage.source}: {e.message}")

    def _process_file(self, stage: Stage) -> None:
        if stage.kind is StageKind.VARIANT:
            label = f"{stage.source.parent.name} variant file"
        else:
            label = "file"
        self.console.step(f"Processing {label} {stage.source.name}")
        self._render(stage)

    # =========================================================================
    # Apply
    # =========================================================================

    def _print_output(self, line: str) -> None:
        self.console.print(f"[blue]{escape(line)}[/blue]")

    async def _apply_reference(self, reference: str) -> bool:
        result = await asyncio.to_thread(
            self.kubectl.apply,
            reference,
            context=self.context,
            dry_run=self.dry_run,
            on_output=self._print_output,
        )
        return result.success

    async def _apply_staged(self) -> None:
        self.console.print_subheader("Applying generated manifests.")
        if not await self._apply_reference(str(self.paths.staging_dir)):
            raise BulkApplyFailed("Could not run kubectl apply")
