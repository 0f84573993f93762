"""Shared fixtures for deployer tests.

Azure SDK clients are always replaced with mocks; no test talks to Azure.
"""

import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from arm_deploy.config import (
    CREDENTIAL_ENV_VARS,
    DeploymentSettings,
    ServicePrincipalCredentials,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clean_deploy_env(monkeypatch):
    """Keep ARM_DEPLOY_* settings from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("ARM_DEPLOY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credential_env(monkeypatch):
    """Set all four service principal variables."""
    values = {
        "AZURE_TENANT_ID": "00000000-0000-0000-0000-000000000001",
        "AZURE_CLIENT_ID": "00000000-0000-0000-0000-000000000002",
        "AZURE_CLIENT_SECRET": "not-a-real-secret",
        "AZURE_SUBSCRIPTION_ID": "00000000-0000-0000-0000-000000000003",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


@pytest.fixture
def no_credential_env(monkeypatch):
    """Remove all four service principal variables."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credentials():
    return ServicePrincipalCredentials(
        tenant_id="00000000-0000-0000-0000-000000000001",
        client_id="00000000-0000-0000-0000-000000000002",
        client_secret="not-a-real-secret",
        subscription_id="00000000-0000-0000-0000-000000000003",
    )


@pytest.fixture
def template_file():
    return FIXTURES_DIR / "template.json"


@pytest.fixture
def ssh_key_file():
    return FIXTURES_DIR / "id_rsa.pub"


@pytest.fixture
def settings(template_file, ssh_key_file):
    """Settings pointing at the fixture template and key."""
    return DeploymentSettings(
        location="eastus",
        resource_group="test-rg",
        deployment_name="test-deployment",
        dns_prefix="my-dns",
        template_file=template_file,
        ssh_key_path=ssh_key_file,
    )


def make_poller(result=None):
    """Mock LRO poller that has already finished."""
    poller = MagicMock()
    poller.done.return_value = True
    poller.result.return_value = result
    return poller


@pytest.fixture
def poller_factory():
    return make_poller


@pytest.fixture
def resource_client():
    """Mock ResourceManagementClient whose calls all succeed."""
    client = MagicMock()
    client.resource_groups.create_or_update.return_value = SimpleNamespace(
        name="test-rg", location="eastus"
    )
    client.deployments.begin_validate.return_value = make_poller(
        SimpleNamespace(error=None)
    )
    client.deployments.begin_create_or_update.return_value = make_poller(
        SimpleNamespace(
            properties=SimpleNamespace(
                provisioning_state="Succeeded",
                outputs={"hostname": {"type": "String", "value": "my-dns.eastus"}},
                error=None,
            )
        )
    )
    client.resource_groups.begin_delete.return_value = make_poller()
    return client


@pytest.fixture
def echo_lines():
    """Collects progress output in place of click.echo."""
    return []
