"""
Service principal authentication and management client creation.

The credential and client are created once per run by the caller and passed
to the orchestrator; nothing here is cached at module level.
"""

import logging
from typing import Any, Callable, Optional

from azure.core.exceptions import AzureError
from azure.identity import AzureAuthorityHosts, ClientSecretCredential
from azure.mgmt.resource import ResourceManagementClient

from .config import ServicePrincipalCredentials
from .exceptions import AuthError
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"


def authenticate(
    credentials: ServicePrincipalCredentials,
    authority: Optional[str] = None,
    credential_factory: Callable[..., ClientSecretCredential] = ClientSecretCredential,
) -> ClientSecretCredential:
    """
    Exchange the service principal secret for a management token.

    A token is requested right away so that bad credentials fail here rather
    than on the first Resource Manager call.

    Args:
        credentials: Service principal to authenticate as
        authority: Authority host, defaults to the Azure public cloud
        credential_factory: Credential class, replaceable for testing

    Returns:
        The credential, holding a cached token

    Raises:
        AuthError: On credential rejection, network failure or a malformed
            tenant ID
    """
    logger.info(f"Authenticating {credentials.mask_secret()}")
    try:
        credential = credential_factory(
            tenant_id=credentials.tenant_id,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            authority=authority or AzureAuthorityHosts.AZURE_PUBLIC_CLOUD,
        )
        credential.get_token(MANAGEMENT_SCOPE)
    except (AzureError, ValueError) as e:
        raise AuthError(
            f"Service principal authentication failed: {e}",
            tenant_id=credentials.tenant_id,
            cause=e,
        ) from e

    logger.info("Service principal token acquired")
    return credential


def create_resource_client(
    credential: Any,
    subscription_id: str,
    client_factory: Callable[..., ResourceManagementClient] = ResourceManagementClient,
) -> ResourceManagementClient:
    """Build the Resource Manager client for one subscription."""
    return client_factory(
        credential,
        subscription_id,
        connection_timeout=Timeouts.AZURE_SDK_CONNECTION,
        read_timeout=Timeouts.AZURE_SDK_READ,
    )
