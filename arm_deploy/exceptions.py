"""
Custom Exception Hierarchy for the ARM template deployer

Every failure the deployment workflow can hit is raised as a subclass of
``ArmDeployError`` and propagated up to the CLI, which is the only place that
decides the process exit status.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type, TypeVar

if TYPE_CHECKING:
    from .models import ValidationFailure


class ArmDeployError(Exception):
    """
    Base exception class for all deployer errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Local configuration and file errors
class ConfigError(ArmDeployError):
    """Raised when required configuration is missing or invalid."""

    def __init__(
        self, message: str, missing_keys: Optional[List[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if missing_keys:
            context["missing_keys"] = missing_keys
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MISSING_CONFIG" if missing_keys else "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion",
            f"Set required configuration: {', '.join(missing_keys)}"
            if missing_keys
            else "Check deployment settings and environment variables",
        )
        super().__init__(message, **kwargs)
        self.missing_keys = list(missing_keys or [])


class LocalFileError(ArmDeployError):
    """Raised when a local template, parameters or key file cannot be used."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "LOCAL_FILE_ERROR")
        super().__init__(message, **kwargs)
        self.path = path


# Azure-related exceptions
class AuthError(ArmDeployError):
    """Raised when the service principal token exchange fails."""

    def __init__(
        self, message: str, tenant_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET",
        )
        super().__init__(message, **kwargs)


class AzureOperationError(ArmDeployError):
    """Base class for errors returned by Azure Resource Manager."""

    pass


class ProvisioningError(AzureOperationError):
    """Raised when the resource group cannot be created or updated."""

    def __init__(
        self, message: str, resource_group: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if resource_group:
            context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_GROUP_PROVISIONING_FAILED")
        super().__init__(message, **kwargs)


class DeploymentError(AzureOperationError):
    """Raised when validation cannot run or the deployment itself fails."""

    def __init__(
        self, message: str, deployment_name: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if deployment_name:
            context["deployment_name"] = deployment_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEPLOYMENT_FAILED")
        super().__init__(message, **kwargs)


class TeardownError(AzureOperationError):
    """Raised when deleting the resource group fails."""

    def __init__(
        self, message: str, resource_group: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if resource_group:
            context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_GROUP_DELETE_FAILED")
        super().__init__(message, **kwargs)


class ValidationFailedError(ArmDeployError):
    """Carries a ValidationFailure up to the top-level handler."""

    def __init__(self, failure: "ValidationFailure", **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "TEMPLATE_VALIDATION_FAILED")
        super().__init__(
            f"Template validation failed: {failure.code or '-'}", **kwargs
        )
        self.failure = failure


AzureErrorT = TypeVar("AzureErrorT", bound=ArmDeployError)


def wrap_azure_exception(
    exc: Exception,
    error_cls: Type[AzureErrorT],
    action: str,
    **kwargs: Any,
) -> AzureErrorT:
    """
    Wrap an Azure SDK exception in our custom exception hierarchy.

    The remote message is kept verbatim so the user sees exactly what
    Resource Manager returned.

    Args:
        exc: The original exception
        error_cls: Exception class to build
        action: Short description of what failed, used as message prefix
        **kwargs: Extra keyword arguments for ``error_cls``

    Returns:
        The wrapped exception, ready to be raised ``from exc``
    """
    return error_cls(f"{action}: {exc}", cause=exc, **kwargs)
