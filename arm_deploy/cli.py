"""Command line interface for deploying ARM templates.

Examples:

    # Deploy the bundled VM sample and keep the resources
    arm-deploy deploy --resource-group my-rg --dns-prefix my-vm

    # Deploy from the sample repository links, then ask before deleting
    arm-deploy deploy --template-link <URI> --parameters-link <URI> --cleanup prompt

    # Validate only
    arm-deploy validate --template-file ./azuredeploy.json

    # Remove what a previous run created
    arm-deploy delete --resource-group my-rg --yes
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape

from .auth import authenticate, create_resource_client
from .config import (
    SAMPLE_PARAMETERS_URI,
    SAMPLE_TEMPLATE_URI,
    DeploymentSettings,
    LoggingConfig,
    load_credentials,
)
from .exceptions import ArmDeployError, ValidationFailedError
from .logging_config import setup_logging
from .orchestrator import DeploymentOrchestrator, deploy_template

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def _run_or_exit(action: Callable[[], Any]) -> Any:
    """Run ``action``; report any deployer error and exit non-zero."""
    try:
        return action()
    except ValidationFailedError:
        # The failure report was already printed by the orchestrator
        sys.exit(1)
    except ArmDeployError as e:
        logger.debug(f"Run failed: {e.to_dict()}")
        console.print(f"[red]❌ {escape(str(e))}[/red]", soft_wrap=True)
        sys.exit(1)


def _settings_from_options(options: Dict[str, Any]) -> DeploymentSettings:
    """Build settings, letting CLI options override environment defaults."""
    overrides = {key: value for key, value in options.items() if value is not None}
    return DeploymentSettings(**overrides)


def deployment_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``deploy`` and ``validate``."""
    options = [
        click.option("--resource-group", help="Resource group to deploy into"),
        click.option("--location", help="Azure region (default: westus)"),
        click.option("--deployment-name", help="Deployment name (default: azure-sample)"),
        click.option("--dns-prefix", help="DNS label prefix for the VM public IP"),
        click.option("--vm-name", help="Virtual machine name"),
        click.option("--admin-username", help="VM admin user (default: azureSample)"),
        click.option(
            "--template-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Local ARM template (default: bundled VM sample)",
        ),
        click.option(
            "--template-link",
            default=None,
            help=f"Template URI instead of a local file, e.g. {SAMPLE_TEMPLATE_URI}",
        ),
        click.option(
            "--parameters-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Local parameters JSON (flat values or ARM parameters document)",
        ),
        click.option(
            "--parameters-link",
            default=None,
            help=f"Parameters URI instead of local values, e.g. {SAMPLE_PARAMETERS_URI}",
        ),
        click.option("--content-version", help="Content version for linked sources"),
        click.option(
            "--ssh-key-path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Public key file (default: ~/.ssh/id_rsa.pub)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: LOG_LEVEL or INFO)",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], json_logs: bool) -> None:
    """Deploy Azure Resource Manager templates with a service principal."""
    ctx.ensure_object(dict)
    logging_kwargs: Dict[str, Any] = {"json_output": json_logs}
    if log_level:
        logging_kwargs["level"] = log_level
    setup_logging(_run_or_exit(lambda: LoggingConfig(**logging_kwargs)))


@cli.command(name="deploy")
@deployment_options
@click.option("--skip-validation", is_flag=True, help="Deploy without validating first")
@click.option(
    "--teardown-on-error",
    is_flag=True,
    help="Delete the resource group if any step fails",
)
@click.option(
    "--cleanup",
    type=click.Choice(["never", "prompt", "always"]),
    default="never",
    show_default=True,
    help="Delete the resource group after a successful deployment",
)
@click.option("--output-json", is_flag=True, help="Print the result as JSON")
def deploy_command(
    skip_validation: bool,
    teardown_on_error: bool,
    cleanup: str,
    output_json: bool,
    **options: Any,
) -> None:
    """Create the resource group and deploy the template into it."""
    click.echo("Azure Resource Manager Template Deployment")

    def _deploy() -> Any:
        credentials = load_credentials()
        settings = _settings_from_options(options)
        if skip_validation:
            settings.validate = False
        if teardown_on_error:
            settings.teardown_on_error = True

        confirm: Optional[Callable[[], bool]] = None
        if cleanup == "always":
            confirm = lambda: True  # noqa: E731
        elif cleanup == "prompt":
            confirm = lambda: click.confirm(  # noqa: E731
                f"Delete resource group '{settings.resource_group}' and everything in it?",
                default=False,
            )
        return deploy_template(credentials, settings, confirm_teardown=confirm)

    result = _run_or_exit(_deploy)
    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))


@cli.command(name="validate")
@deployment_options
def validate_command(**options: Any) -> None:
    """Validate the template against the resource group without deploying."""

    def _validate() -> None:
        credentials = load_credentials()
        settings = _settings_from_options(options)
        credential = authenticate(credentials)
        client = create_resource_client(credential, credentials.subscription_id)
        failure = DeploymentOrchestrator(client, settings).validate_only()
        if failure is not None:
            click.echo(failure.format_report())
            raise ValidationFailedError(failure)

    _run_or_exit(_validate)


@cli.command(name="delete")
@click.option("--resource-group", default=None, help="Resource group to delete")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def delete_command(resource_group: Optional[str], yes: bool) -> None:
    """Delete a resource group created by a previous deployment."""

    def _delete() -> None:
        credentials = load_credentials()
        settings = _settings_from_options({"resource_group": resource_group})
        if not yes and not click.confirm(
            f"Delete resource group '{settings.resource_group}' and everything in it?",
            default=False,
        ):
            click.echo("Aborted.")
            return
        credential = authenticate(credentials)
        client = create_resource_client(credential, credentials.subscription_id)
        DeploymentOrchestrator(client, settings).teardown()

    _run_or_exit(_delete)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
