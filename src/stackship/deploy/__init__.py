"""Stack deployment orchestration module."""

from stackship.deploy.models import (
    DeploymentDescriptor,
    DeploymentReport,
    ExportBinding,
    FileUploadSpec,
    HandlerInfo,
    StackStatus,
)
from stackship.deploy.orchestrator import DeploymentOrchestrator
from stackship.deploy.stack import PollPolicy, StackLifecycleController

__all__ = [
    "DeploymentDescriptor",
    "DeploymentOrchestrator",
    "DeploymentReport",
    "ExportBinding",
    "FileUploadSpec",
    "HandlerInfo",
    "PollPolicy",
    "StackLifecycleController",
    "StackStatus",
]
