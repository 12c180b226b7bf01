"""Errors raised while rendering and deploying manifests.

Every fatal condition is a ``DeploymentError`` so the CLI can report it
uniformly and exit non-zero.
"""

from __future__ import annotations


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationInvalid(DeploymentError):
    """Values/secrets input is missing, malformed or inconsistent."""


class IncompatibleVersions(DeploymentError):
    """kubectl and the target cluster are outside the supported skew."""


class NamespaceStateMismatch(DeploymentError):
    """Deployment namespace presence contradicts the requested mode."""


class TemplateError(DeploymentError):
    """A manifest template could not be rendered."""


class UnknownPlaceholderKey(TemplateError):
    """A placeholder refers to a key missing from the configuration."""

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Yaml template refers unknown key {expression}")


class SecretsForbidden(TemplateError):
    """A placeholder reads secrets outside a secrets directory."""

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(
            "Secret values can only be used in yaml files located in the "
            f"@secrets directory. Tried to reference {expression}."
        )


class ImportApplyFailed(DeploymentError):
    """Applying an imported manifest reference failed."""


class BulkApplyFailed(DeploymentError):
    """Applying the staged manifests failed."""


class DeploymentCancelled(DeploymentError):
    """The run was cancelled before completing."""
