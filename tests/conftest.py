"""Pytest fixtures for stackship tests."""

import json
import os
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from stackship.config import (
    StackshipConfig,
    ProfileConfig,
    AWSConfig,
    DeployConfig,
    PollConfig,
)
from stackship.deploy.models import DeploymentDescriptor
from stackship.deploy.providers.base import ProviderSet
from stackship.deploy.providers.memory import (
    InMemoryFunctionInvoker,
    InMemoryObjectStore,
    InMemoryStackProvider,
)

PROJECT = "demo"
STACK = "demo-dev"
BUCKET_EXPORT = "demo-dev-NimbusDeploymentBucketName"
BUCKET = "demo-dev-deployment-bucket"

TEMPLATE = '{"AWSTemplateFormatVersion": "2010-09-09", "Resources": {}}'


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A project build output: templates, descriptor, artifacts."""
    compiled = tmp_path / "generated"
    compiled.mkdir()
    (compiled / "cloudformation-stack-create-dev.json").write_text(TEMPLATE)
    (compiled / "cloudformation-stack-update-dev.json").write_text(TEMPLATE)
    (compiled / "nimbus-state.json").write_text(json.dumps({"projectName": PROJECT}))

    (tmp_path / "functions.jar").write_bytes(b"PK\x03\x04shaded")

    assembled = tmp_path / "assembled"
    assembled.mkdir()
    for name in ("a.jar", "b.jar", "c.jar"):
        (assembled / name).write_bytes(b"PK\x03\x04" + name.encode())

    return tmp_path


@pytest.fixture
def deploy_config(build_dir: Path) -> DeployConfig:
    """Deploy settings pointing at the build dir, with instant polling."""
    return DeployConfig(
        stage="dev",
        lambda_path=str(build_dir / "functions.jar"),
        assembled_dir=str(build_dir / "assembled"),
        compiled_source_path=str(build_dir / "generated"),
        poll=PollConfig(delay=0, max_delay=0, deadline=5, max_transport_errors=3),
    )


@pytest.fixture
def stacks() -> InMemoryStackProvider:
    return InMemoryStackProvider(exports={BUCKET_EXPORT: BUCKET})


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def functions() -> InMemoryFunctionInvoker:
    return InMemoryFunctionInvoker()


@pytest.fixture
def providers(
    stacks: InMemoryStackProvider,
    store: InMemoryObjectStore,
    functions: InMemoryFunctionInvoker,
) -> ProviderSet:
    return ProviderSet(stacks=stacks, store=store, functions=functions)


@pytest.fixture
def descriptor() -> DeploymentDescriptor:
    return DeploymentDescriptor(project_name=PROJECT)


@pytest.fixture
def mock_config() -> StackshipConfig:
    """Create a mock configuration."""
    return StackshipConfig(
        profiles={
            "default": ProfileConfig(
                aws=AWSConfig(profile="test", region="eu-west-1"),
                deploy=DeployConfig(),
            )
        }
    )


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    env_vars = [
        "STACKSHIP_AWS_PROFILE",
        "STACKSHIP_AWS_REGION",
        "STACKSHIP_AWS_ENDPOINT_URL",
        "STACKSHIP_STAGE",
        "STACKSHIP_PROFILE",
        "STACKSHIP_CONFIG",
        "AWS_PROFILE",
        "AWS_REGION",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    for k in env_vars:
        os.environ.pop(k, None)

    yield

    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)
