"""Data models for a single deployment run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from azure.mgmt.resource.resources.models import (
    Deployment,
    DeploymentMode,
    DeploymentProperties,
    ParametersLink,
    TemplateLink,
)


@dataclass(frozen=True)
class Inline:
    """Content sent as part of the request body."""

    content: Dict[str, Any]


@dataclass(frozen=True)
class Link:
    """Content Resource Manager fetches from a URI."""

    uri: str
    content_version: Optional[str] = "1.0.0.0"


TemplateSource = Union[Inline, Link]
ParametersSource = Union[Inline, Link]


@dataclass(frozen=True)
class DeploymentRequest:
    """
    A template and its parameters, ready to validate or deploy.

    Each side is either inline or linked, never both. The mode is always
    incremental: resources missing from the template are left alone.
    """

    template: TemplateSource
    parameters: ParametersSource

    def __post_init__(self) -> None:
        for name in ("template", "parameters"):
            source = getattr(self, name)
            if not isinstance(source, (Inline, Link)):
                raise TypeError(
                    f"{name} must be Inline or Link, got {type(source).__name__}"
                )

    @property
    def mode(self) -> DeploymentMode:
        return DeploymentMode.INCREMENTAL

    def to_deployment(self) -> Deployment:
        """Build the SDK request body."""
        properties = DeploymentProperties(mode=self.mode)

        if isinstance(self.template, Inline):
            properties.template = self.template.content
        else:
            properties.template_link = TemplateLink(
                uri=self.template.uri, content_version=self.template.content_version
            )

        if isinstance(self.parameters, Inline):
            properties.parameters = self.parameters.content
        else:
            properties.parameters_link = ParametersLink(
                uri=self.parameters.uri,
                content_version=self.parameters.content_version,
            )

        return Deployment(properties=properties)


def _or_dash(value: Optional[str]) -> str:
    return value if value else "-"


@dataclass(frozen=True)
class ValidationFailure:
    """Structured error returned by the validation endpoint."""

    code: Optional[str] = None
    message: Optional[str] = None
    target: Optional[str] = None

    @classmethod
    def from_error(cls, error: Any) -> "ValidationFailure":
        """Build from any object exposing ``code``/``message``/``target``."""
        return cls(
            code=getattr(error, "code", None),
            message=getattr(error, "message", None),
            target=getattr(error, "target", None),
        )

    def format_report(self) -> str:
        return (
            f"Error! Code: {_or_dash(self.code)}\n"
            f"Message: {_or_dash(self.message)}\n"
            f"Target: {_or_dash(self.target)}"
        )


class RunState(str, Enum):
    """Where a deployment run has got to."""

    INIT = "init"
    AUTHENTICATED = "authenticated"
    GROUP_READY = "group_ready"
    PARAMETERS_BUILT = "parameters_built"
    VALIDATED = "validated"
    DEPLOYED = "deployed"
    DELETED = "deleted"


@dataclass
class DeploymentResult:
    """Outcome of a completed run."""

    state: RunState
    resource_group: str
    deployment_name: str
    provisioning_state: Optional[str] = None
    connection_hint: Optional[str] = None
    outputs: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "resource_group": self.resource_group,
            "deployment_name": self.deployment_name,
            "provisioning_state": self.provisioning_state,
            "connection_hint": self.connection_hint,
            "outputs": self.outputs,
        }
