"""Deployment commands.

``init`` creates a new deployment on a cluster, ``update`` re-applies the
manifest tree to an existing one. Both share the same options.
"""

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer

from src.cli.deployment.manifest_deployer import DeploymentMode, ManifestDeployer
from src.cli.deployment.shell_commands import CommandRunner, KubectlCommands
from src.cli.shared.console import console, with_error_handling
from src.config.loader import load_configuration
from src.infra.errors import ConfigurationInvalid
from src.infra.k8s import Kr8sController, run_sync
from src.templating.pipeline import DocumentPipeline

# ---------------------------------------------------------------------------
# Shared Options
# ---------------------------------------------------------------------------

ManifestsOption = Annotated[
    Path,
    typer.Option(
        "--manifests",
        "-m",
        help="The directory path where the templated manifest structure resides.",
    ),
]
ValuesOption = Annotated[
    Path,
    typer.Option(
        "--values",
        "-v",
        help="Path to the .toml file containing the deployment configuration.",
    ),
]
SecretsOption = Annotated[
    Path | None,
    typer.Option(
        "--secrets",
        "-s",
        help="Path to the .toml file containing the deployment secrets.",
    ),
]
SecretsFromEnvOption = Annotated[
    str | None,
    typer.Option(
        "--secrets-from-env",
        help="Key of the environment variable containing the secrets in TOML format.",
    ),
]
DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="If set, no changes will be applied to the cluster.",
    ),
]


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


async def _run_until_cancelled(deployer: ManifestDeployer) -> int:
    """Run the deployer, cancelling it cleanly on SIGTERM."""
    cancel_event = asyncio.Event()
    deployer.cancel_event = cancel_event

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, cancel_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # Signal handlers are unavailable on Windows and off the main thread
        handler_installed = False

    try:
        return await deployer.run()
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGTERM)


def run_deployment(
    mode: DeploymentMode,
    manifests: Path,
    values: Path,
    secrets: Path | None,
    secrets_from_env: str | None,
    dry_run: bool,
) -> int:
    """Load configuration, build the deployer and run it.

    Returns:
        Process exit code of the run
    """
    loaded = load_configuration(
        values,
        secrets,
        secrets_from_env,
        secrets_required=mode is DeploymentMode.INITIALIZE,
    )
    if loaded.secrets is None:
        console.warn(
            "No secrets supplied. Secret manifests that need them will be skipped."
        )
    else:
        console.info(f"Using secrets from {loaded.secrets_source}")

    if not manifests.is_dir():
        raise ConfigurationInvalid(f"manifests directory {manifests} not found")

    kubectl = KubectlCommands(CommandRunner())
    if not kubectl.is_available():
        raise ConfigurationInvalid(
            "kubectl was not found. Make sure kubectl is installed and on PATH."
        )

    settings = loaded.settings
    console.print_header(f"k8s-deploy {mode.value}: {settings.deployment}")
    console.info(f"Kubectl context is {settings.cluster.context}")

    deployer = ManifestDeployer(
        settings,
        DocumentPipeline(loaded.values, loaded.secrets),
        Kr8sController(settings.cluster.context),
        kubectl,
        console,
        mode=mode,
        manifests_dir=manifests.resolve(),
        dry_run=dry_run,
    )
    return run_sync(_run_until_cancelled(deployer))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@with_error_handling
def init(
    manifests: ManifestsOption,
    values: ValuesOption,
    secrets: SecretsOption = None,
    secrets_from_env: SecretsFromEnvOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Create a new deployment."""
    exit_code = run_deployment(
        DeploymentMode.INITIALIZE, manifests, values, secrets, secrets_from_env, dry_run
    )
    if exit_code:
        raise typer.Exit(exit_code)


@with_error_handling
def update(
    manifests: ManifestsOption,
    values: ValuesOption,
    secrets: SecretsOption = None,
    secrets_from_env: SecretsFromEnvOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Update an existing deployment."""
    exit_code = run_deployment(
        DeploymentMode.UPDATE, manifests, values, secrets, secrets_from_env, dry_run
    )
    if exit_code:
        raise typer.Exit(exit_code)
