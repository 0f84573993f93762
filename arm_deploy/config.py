"""
Configuration for ARM template deployments.

Credentials are read from the four standard service principal environment
variables. Deployment settings carry sample defaults and can be overridden
through ``ARM_DEPLOY_*`` environment variables or CLI options.

A ``.env`` file in the working directory is loaded when this module is
imported. The package imports it first, so timeouts computed at import time
in ``timeout_config`` see the same values.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError

# Load environment variables; existing ones win
load_dotenv(find_dotenv(usecwd=True))

logger = logging.getLogger(__name__)

CREDENTIAL_ENV_VARS = (
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_SUBSCRIPTION_ID",
)

TEMPLATES_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE_FILE = TEMPLATES_DIR / "vmDeploymentTemplate.json"
DEFAULT_PARAMETERS_FILE = TEMPLATES_DIR / "vmDeploymentParameter.json"

SAMPLE_TEMPLATE_URI = (
    "https://raw.githubusercontent.com/Azure-Samples/"
    "resource-manager-go-template-deployment/master/vmDeploymentTemplate.json"
)
SAMPLE_PARAMETERS_URI = (
    "https://raw.githubusercontent.com/Azure-Samples/"
    "resource-manager-go-template-deployment/master/vmDeploymentParameter.json"
)

# Azure resource group naming rules
RESOURCE_GROUP_PATTERN = re.compile(r"^[a-zA-Z0-9_.()-]{1,90}$")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ServicePrincipalCredentials:
    """
    Service principal credentials for a single subscription.

    Attributes:
        tenant_id: Azure Active Directory tenant ID or domain
        client_id: Application (client) ID
        client_secret: Application secret
        subscription_id: Target subscription ID
    """

    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    subscription_id: str

    def mask_secret(self) -> str:
        """Return a safe representation for logging."""
        return (
            f"ServicePrincipalCredentials(tenant_id={self.tenant_id}, "
            f"client_id={self.client_id}, subscription_id={self.subscription_id})"
        )


def load_credentials(
    environ: Optional[Mapping[str, str]] = None,
) -> ServicePrincipalCredentials:
    """
    Read service principal credentials from the environment.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``

    Returns:
        ServicePrincipalCredentials with all four values set

    Raises:
        ConfigError: If any variable is unset or blank. Every missing
            variable is named, not only the first one.
    """
    env = os.environ if environ is None else environ
    values: Dict[str, str] = {
        name: (env.get(name) or "").strip() for name in CREDENTIAL_ENV_VARS
    }
    missing: List[str] = [name for name in CREDENTIAL_ENV_VARS if not values[name]]
    if missing:
        raise ConfigError(
            f"Missing environment variables: {', '.join(missing)}",
            missing_keys=missing,
        )

    credentials = ServicePrincipalCredentials(
        tenant_id=values["AZURE_TENANT_ID"],
        client_id=values["AZURE_CLIENT_ID"],
        client_secret=values["AZURE_CLIENT_SECRET"],
        subscription_id=values["AZURE_SUBSCRIPTION_ID"],
    )
    logger.debug(f"Loaded credentials: {credentials.mask_secret()}")
    return credentials


@dataclass
class DeploymentSettings:
    """Where and what to deploy."""

    location: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_LOCATION", "westus")
    )
    resource_group: str = field(
        default_factory=lambda: os.getenv(
            "ARM_DEPLOY_RESOURCE_GROUP", "your-azure-sample-group"
        )
    )
    deployment_name: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_DEPLOYMENT_NAME", "azure-sample")
    )
    dns_prefix: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_DNS_PREFIX", "sample-dns-prefix")
    )
    vm_name: str = field(
        default_factory=lambda: os.getenv(
            "ARM_DEPLOY_VM_NAME", "azure-deployment-sample-vm"
        )
    )
    admin_username: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_ADMIN_USERNAME", "azureSample")
    )
    template_file: Path = field(
        default_factory=lambda: Path(
            os.getenv("ARM_DEPLOY_TEMPLATE_FILE", str(DEFAULT_TEMPLATE_FILE))
        )
    )
    template_link: Optional[str] = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_TEMPLATE_LINK") or None
    )
    parameters_file: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["ARM_DEPLOY_PARAMETERS_FILE"])
            if os.getenv("ARM_DEPLOY_PARAMETERS_FILE")
            else None
        )
    )
    parameters_link: Optional[str] = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_PARAMETERS_LINK") or None
    )
    content_version: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_CONTENT_VERSION", "1.0.0.0")
    )
    ssh_key_path: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["ARM_DEPLOY_SSH_KEY_PATH"])
            if os.getenv("ARM_DEPLOY_SSH_KEY_PATH")
            else None
        )
    )
    validate: bool = field(
        default_factory=lambda: _env_flag("ARM_DEPLOY_VALIDATE", True)
    )
    teardown_on_error: bool = field(
        default_factory=lambda: _env_flag("ARM_DEPLOY_TEARDOWN_ON_ERROR", False)
    )
    cloud_domain: str = field(
        default_factory=lambda: os.getenv("ARM_DEPLOY_CLOUD_DOMAIN", "cloudapp.azure.com")
    )

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        self.template_file = Path(self.template_file)
        if self.parameters_file is not None:
            self.parameters_file = Path(self.parameters_file)
        if self.ssh_key_path is not None:
            self.ssh_key_path = Path(self.ssh_key_path)

        if not self.location or not self.location.strip():
            raise ConfigError("Location must not be empty")
        if not RESOURCE_GROUP_PATTERN.match(
            self.resource_group
        ) or self.resource_group.endswith("."):
            raise ConfigError(f"Invalid resource group name: {self.resource_group!r}")
        if not self.deployment_name:
            raise ConfigError("Deployment name must not be empty")

    def to_dict(self) -> Dict[str, object]:
        """Convert settings to a dictionary for logging."""
        return {
            "location": self.location,
            "resource_group": self.resource_group,
            "deployment_name": self.deployment_name,
            "dns_prefix": self.dns_prefix,
            "template": self.template_link or str(self.template_file),
            "parameters": self.parameters_link
            or (str(self.parameters_file) if self.parameters_file else "inline"),
            "validate": self.validate,
            "teardown_on_error": self.teardown_on_error,
        }


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    # Wraps the line structlog has already rendered
    format: str = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "%(log_color)s%(message)s")
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    json_output: bool = False

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ConfigError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))
