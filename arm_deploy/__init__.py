"""
ARM Template Deployer

Authenticates with an Azure service principal and deploys an Azure Resource
Manager template into a resource group: create the group, validate, deploy,
and optionally tear everything down again.
"""

from .config import DeploymentSettings, ServicePrincipalCredentials, load_credentials
from .models import DeploymentRequest, DeploymentResult, Inline, Link, RunState
from .orchestrator import DeploymentOrchestrator, deploy_template

__version__ = "0.1.0"

__all__ = [
    "DeploymentOrchestrator",
    "DeploymentRequest",
    "DeploymentResult",
    "DeploymentSettings",
    "Inline",
    "Link",
    "RunState",
    "ServicePrincipalCredentials",
    "deploy_template",
    "load_credentials",
]
