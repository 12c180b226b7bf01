"""Loading of values and secrets TOML input."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic_core import ValidationError

from src.config.settings import DeploymentSettings
from src.infra.errors import ConfigurationInvalid
from src.templating.config_tree import ConfigTree


@dataclass(frozen=True)
class LoadedConfiguration:
    """Configuration trees for one run.

    Attributes:
        settings: Validated required keys
        values: Public values tree
        secrets: Secrets tree, or None when no secrets were supplied
        secrets_source: Human-readable origin of the secrets
    """

    settings: DeploymentSettings
    values: ConfigTree
    secrets: ConfigTree | None
    secrets_source: str | None = None


def parse_toml(content: str, source: str) -> dict[str, Any]:
    """Parse TOML text, mapping syntax errors to ConfigurationInvalid."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationInvalid(f"Could not parse {source}", details=str(e)) from e


def load_toml_file(file_path: Path, description: str) -> dict[str, Any]:
    if not file_path.is_file():
        raise ConfigurationInvalid(f"{description} file {file_path} not found.")
    return parse_toml(file_path.read_text(encoding="utf-8"), str(file_path))


def validate_settings(values: dict[str, Any]) -> DeploymentSettings:
    """Validate the required keys of a values tree.

    Raises:
        ConfigurationInvalid: If ``deployment`` or ``cluster.context`` is
            missing or blank
    """
    try:
        return DeploymentSettings.model_validate(values)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}")
        raise ConfigurationInvalid(
            "Invalid values file", details="\n".join(messages)
        ) from e


def load_secrets(
    secrets_file: Path | None,
    secrets_env: str | None,
    *,
    required: bool,
) -> tuple[ConfigTree | None, str | None]:
    """Load secrets from a file or from an environment variable.

    Args:
        secrets_file: Path to a secrets TOML file
        secrets_env: Name of an environment variable holding secrets TOML
        required: Whether one of the two sources must be given

    Returns:
        Tuple of (secrets tree or None, description of the source)
    """
    if secrets_file is not None and secrets_env:
        raise ConfigurationInvalid(
            "Only one of --secrets or --secrets-from-env may be specified."
        )

    if secrets_env:
        content = os.environ.get(secrets_env)
        if content is None:
            raise ConfigurationInvalid(
                f"Secrets from environment variable {secrets_env} not found."
            )
        logger.info(f"Using secrets from env: {secrets_env}")
        return ConfigTree(parse_toml(content, f"${secrets_env}")), f"env: {secrets_env}"

    if secrets_file is not None:
        logger.info(f"Using secrets from file: {secrets_file}")
        return (
            ConfigTree(load_toml_file(secrets_file, "Secrets")),
            f"file: {secrets_file}",
        )

    if required:
        raise ConfigurationInvalid(
            "Either --secrets or --secrets-from-env must be specified "
            "when initializing a new deployment."
        )
    return None, None


def load_configuration(
    values_file: Path,
    secrets_file: Path | None = None,
    secrets_env: str | None = None,
    *,
    secrets_required: bool = False,
) -> LoadedConfiguration:
    """Load and validate the configuration for a run.

    Args:
        values_file: Values TOML file
        secrets_file: Optional secrets TOML file
        secrets_env: Optional environment variable with secrets TOML
        secrets_required: Whether secrets must be supplied (initialization)

    Returns:
        LoadedConfiguration with validated settings and both trees

    Raises:
        ConfigurationInvalid: On missing files, malformed TOML, missing
            required keys or conflicting secrets options
    """
    raw_values = load_toml_file(values_file, "Values")
    settings = validate_settings(raw_values)
    logger.info(f"Loaded values for deployment {settings.deployment}")

    secrets, source = load_secrets(secrets_file, secrets_env, required=secrets_required)
    return LoadedConfiguration(
        settings=settings,
        values=ConfigTree(raw_values),
        secrets=secrets,
        secrets_source=source,
    )
