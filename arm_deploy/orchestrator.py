"""Deployment orchestration for ARM templates.

This module runs one deployment end to end against Azure Resource Manager:
ensure the resource group, build the request, validate, deploy, and tear the
group down when asked to or when the run fails and teardown-on-error is set.

Every step raises an ``ArmDeployError`` subclass on failure. Nothing here
exits the process; the CLI owns that decision.
"""

from typing import Any, Callable, Dict, Optional, Type

import click
import structlog
from azure.core.exceptions import AzureError, HttpResponseError
from azure.core.polling import LROPoller
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.resource.resources.models import ResourceGroup

from .auth import authenticate, create_resource_client
from .config import DeploymentSettings, ServicePrincipalCredentials
from .exceptions import (
    ArmDeployError,
    AzureOperationError,
    DeploymentError,
    ProvisioningError,
    TeardownError,
    ValidationFailedError,
    wrap_azure_exception,
)
from .models import (
    DeploymentRequest,
    DeploymentResult,
    Inline,
    Link,
    ParametersSource,
    RunState,
    TemplateSource,
    ValidationFailure,
)
from .parameters import build_parameters, parse_json_from_file
from .timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)

Echo = Callable[[str], Any]

_FAILED_STATES = ("Failed", "Canceled")


class DeploymentOrchestrator:
    """Runs the deployment workflow with an already authenticated client.

    Attributes:
        client: Resource Manager client for the target subscription
        settings: Deployment settings for this run
        state: Last state reached
    """

    def __init__(
        self,
        client: ResourceManagementClient,
        settings: DeploymentSettings,
        echo: Echo = click.echo,
    ) -> None:
        self.client = client
        self.settings = settings
        self.echo = echo
        self.state = RunState.AUTHENTICATED

    def _transition(self, state: RunState) -> None:
        logger.info(
            "state_transition",
            previous=self.state.value,
            state=state.value,
            resource_group=self.settings.resource_group,
        )
        self.state = state

    def _wait(
        self,
        poller: LROPoller,
        timeout: int,
        operation: str,
        error_cls: Type[AzureOperationError],
        **error_kwargs: Any,
    ) -> Any:
        poller.wait(timeout=timeout)
        if not poller.done():
            log_timeout_event(operation, timeout)
            raise error_cls(
                f"{operation} did not complete within {timeout} seconds",
                **error_kwargs,
            )
        return poller.result()

    def ensure_resource_group(self) -> ResourceGroup:
        """Create the resource group, or update it if it already exists."""
        name = self.settings.resource_group
        self.echo("Create resource group...")
        try:
            group = self.client.resource_groups.create_or_update(
                name, ResourceGroup(location=self.settings.location)
            )
        except AzureError as e:
            raise wrap_azure_exception(
                e, ProvisioningError, "Resource group create failed", resource_group=name
            ) from e

        self._transition(RunState.GROUP_READY)
        return group

    def _template_source(self) -> TemplateSource:
        if self.settings.template_link:
            self.echo("\tUsing template link")
            return Link(self.settings.template_link, self.settings.content_version)
        self.echo("\tUsing local template")
        return Inline(parse_json_from_file(self.settings.template_file))

    def _parameters_source(self) -> ParametersSource:
        if self.settings.parameters_link:
            self.echo("\tUsing parameter link")
            return Link(self.settings.parameters_link, self.settings.content_version)

        self.echo("\tUsing local parameters")
        values: Any = self.settings.parameters_file or {
            "dnsLabelPrefix": self.settings.dns_prefix,
            "vmName": self.settings.vm_name,
            "adminUsername": self.settings.admin_username,
        }
        return Inline(build_parameters(values, ssh_key_path=self.settings.ssh_key_path))

    def build_request(self) -> DeploymentRequest:
        """Assemble the template and parameters for this run."""
        self.echo("Build deployment parameters...")
        request = DeploymentRequest(
            template=self._template_source(), parameters=self._parameters_source()
        )
        self._transition(RunState.PARAMETERS_BUILT)
        return request

    def validate(self, request: DeploymentRequest) -> Optional[ValidationFailure]:
        """Dry-run the request.

        Returns:
            None when the template is valid, otherwise the structured failure
        """
        self.echo("Validate deployment template...")
        name = self.settings.deployment_name
        try:
            poller = self.client.deployments.begin_validate(
                self.settings.resource_group, name, request.to_deployment()
            )
            result = self._wait(
                poller,
                Timeouts.VALIDATE,
                "Template validation",
                DeploymentError,
                deployment_name=name,
            )
        except HttpResponseError as e:
            # Newer API versions report an invalid template as HTTP 400
            error = getattr(e, "error", None)
            if e.status_code == 400 and error is not None and error.code:
                return ValidationFailure.from_error(error)
            raise wrap_azure_exception(
                e, DeploymentError, "Validate failed", deployment_name=name
            ) from e
        except AzureError as e:
            raise wrap_azure_exception(
                e, DeploymentError, "Validate failed", deployment_name=name
            ) from e

        if result is not None and result.error is not None:
            return ValidationFailure.from_error(result.error)

        self.echo("Deployment is validated! Template is syntactically correct")
        self._transition(RunState.VALIDATED)
        return None

    def connection_hint(self) -> str:
        s = self.settings
        return f"ssh {s.admin_username}@{s.dns_prefix}.{s.location}.{s.cloud_domain}"

    def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        """Submit the deployment and block until Resource Manager finishes it."""
        self.echo("Deploying...")
        name = self.settings.deployment_name
        try:
            poller = self.client.deployments.begin_create_or_update(
                self.settings.resource_group, name, request.to_deployment()
            )
            deployment = self._wait(
                poller, Timeouts.DEPLOY, "Deployment", DeploymentError, deployment_name=name
            )
        except AzureError as e:
            raise wrap_azure_exception(
                e, DeploymentError, "Deploy failed", deployment_name=name
            ) from e

        properties = getattr(deployment, "properties", None)
        provisioning_state = getattr(properties, "provisioning_state", None)
        if provisioning_state in _FAILED_STATES:
            error = getattr(properties, "error", None)
            detail = getattr(error, "message", None) or provisioning_state
            raise DeploymentError(
                f"Deploy failed: {detail}",
                deployment_name=name,
                context={"provisioning_state": provisioning_state},
            )

        outputs: Dict[str, Any] = {}
        for key, output in (getattr(properties, "outputs", None) or {}).items():
            outputs[key] = output.get("value") if isinstance(output, dict) else output

        hint = self.connection_hint()
        self.echo("Finished deployment")
        self.echo(f"You can connect via {hint}")
        self._transition(RunState.DEPLOYED)
        return DeploymentResult(
            state=RunState.DEPLOYED,
            resource_group=self.settings.resource_group,
            deployment_name=name,
            provisioning_state=provisioning_state,
            connection_hint=hint,
            outputs=outputs,
        )

    def teardown(self) -> None:
        """Delete the resource group and everything in it."""
        name = self.settings.resource_group
        self.echo("Delete resource group...")
        try:
            poller = self.client.resource_groups.begin_delete(name)
            self._wait(
                poller,
                Timeouts.DELETE,
                "Resource group delete",
                TeardownError,
                resource_group=name,
            )
        except AzureError as e:
            raise wrap_azure_exception(
                e, TeardownError, "Delete failed", resource_group=name
            ) from e

        self.echo("Finished deleting resource group")
        self._transition(RunState.DELETED)

    def _teardown_after_failure(self) -> None:
        # Best-effort: the original failure is what gets re-raised
        try:
            self.teardown()
        except ArmDeployError as e:
            logger.error("teardown_failed", error=str(e))
            self.echo(f"Teardown failed: {e}")

    def validate_only(self) -> Optional[ValidationFailure]:
        """Ensure the group, build the request and validate it."""
        self.ensure_resource_group()
        return self.validate(self.build_request())

    def run(
        self, confirm_teardown: Optional[Callable[[], bool]] = None
    ) -> DeploymentResult:
        """Run the full workflow.

        Args:
            confirm_teardown: Called after a successful deployment; the
                resource group is deleted when it returns True

        Raises:
            ValidationFailedError: If validation rejected the template. The
                failure report has already been printed.
            ArmDeployError: Any other failed step
        """
        try:
            self.ensure_resource_group()
            request = self.build_request()
            if self.settings.validate:
                failure = self.validate(request)
                if failure is not None:
                    raise ValidationFailedError(failure)
            result = self.deploy(request)
        except ValidationFailedError as e:
            if self.settings.teardown_on_error:
                self._teardown_after_failure()
            # The report is the last thing printed
            self.echo(e.failure.format_report())
            raise
        except ArmDeployError:
            if self.settings.teardown_on_error:
                self._teardown_after_failure()
            raise

        if confirm_teardown is not None and confirm_teardown():
            self.teardown()
            result.state = RunState.DELETED
        return result


def deploy_template(
    credentials: ServicePrincipalCredentials,
    settings: DeploymentSettings,
    confirm_teardown: Optional[Callable[[], bool]] = None,
    echo: Echo = click.echo,
    client_factory: Callable[..., ResourceManagementClient] = ResourceManagementClient,
) -> DeploymentResult:
    """Authenticate and deploy a template.

    Args:
        credentials: Service principal for the target subscription
        settings: What and where to deploy
        confirm_teardown: Optional callback deciding post-deploy deletion
        echo: Progress output function
        client_factory: Resource Manager client class, replaceable for testing

    Returns:
        The deployment result

    Raises:
        ArmDeployError: If any step fails
    """
    logger.info("deployment_started", **settings.to_dict())
    echo("Get credentials and token...")
    credential = authenticate(credentials)
    client = create_resource_client(
        credential, credentials.subscription_id, client_factory=client_factory
    )
    orchestrator = DeploymentOrchestrator(client, settings, echo=echo)
    return orchestrator.run(confirm_teardown=confirm_teardown)
