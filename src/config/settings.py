"""Validated view of the keys the deployer itself depends on."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.infra.constants import DEFAULT_CONSTANTS


class ClusterSettings(BaseModel):
    """The ``[cluster]`` table of the values file."""

    model_config = ConfigDict(extra="allow")

    context: str = Field(..., description="kubeconfig context to deploy to")
    variant: str = Field(
        default=DEFAULT_CONSTANTS.DEFAULT_VARIANT,
        description="Manifest variant subdirectory to stage",
    )

    @field_validator("context")
    @classmethod
    def _context_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cluster.context not defined in values file.")
        return value


class DeploymentSettings(BaseModel):
    """Required top-level values.

    Other keys are allowed and remain reachable from placeholders through
    the configuration tree; only these are validated.
    """

    model_config = ConfigDict(extra="allow")

    deployment: str = Field(..., description="Deployment namespace name")
    cluster: ClusterSettings

    @field_validator("deployment")
    @classmethod
    def _deployment_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("deployment not defined in values file.")
        return value
