"""
Centralized timeout configuration for Azure Resource Manager calls.

Long-running operations (validation, deployment, resource group deletion) are
waited on through the SDK poller; these values bound that wait. The HTTP
transport timeouts are handed to the management client when it is built.

Usage:
    from arm_deploy.timeout_config import Timeouts

    poller.wait(timeout=Timeouts.DEPLOY)

Environment Variables:
    - ARM_DEPLOY_TIMEOUT_VALIDATE: Template validation (default: 300s)
    - ARM_DEPLOY_TIMEOUT_DEPLOY: Template deployment (default: 1800s)
    - ARM_DEPLOY_TIMEOUT_DELETE: Resource group deletion (default: 1800s)
    - ARM_DEPLOY_TIMEOUT_AZURE_SDK_CONNECTION: HTTP connect (default: 30s)
    - ARM_DEPLOY_TIMEOUT_AZURE_SDK_READ: HTTP read (default: 60s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Timeout constants for Resource Manager operations, in seconds."""

    VALIDATE: Final[int] = _get_timeout("ARM_DEPLOY_TIMEOUT_VALIDATE", 300)
    DEPLOY: Final[int] = _get_timeout("ARM_DEPLOY_TIMEOUT_DEPLOY", 1800)
    DELETE: Final[int] = _get_timeout("ARM_DEPLOY_TIMEOUT_DELETE", 1800)

    # Azure SDK transport
    AZURE_SDK_CONNECTION: Final[int] = _get_timeout(
        "ARM_DEPLOY_TIMEOUT_AZURE_SDK_CONNECTION", 30
    )
    AZURE_SDK_READ: Final[int] = _get_timeout("ARM_DEPLOY_TIMEOUT_AZURE_SDK_READ", 60)


def log_timeout_event(operation: str, timeout_value: int, level: str = "warning") -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    log_func(f"Operation '{operation}' timed out after {timeout_value} seconds")
