"""Custom exceptions for stackship."""

from typing import Any


class StackshipError(Exception):
    """Base exception for all stackship errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(StackshipError):
    """Configuration-related errors."""

    pass


class DescriptorError(StackshipError):
    """Deployment descriptor could not be read or validated."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.path = path


class AWSError(StackshipError):
    """AWS API errors."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.service = service
        self.operation = operation


class AuthenticationError(StackshipError):
    """Authentication/authorization errors."""

    pass


class DeploymentError(StackshipError):
    """A fatal deployment or teardown step failed.

    Carries the failing step, the identifier it targeted (stack, bucket,
    export or object key) and the underlying provider error, if any.
    """

    step: str = "deploy"

    def __init__(
        self,
        message: str,
        target: str | None = None,
        step: str | None = None,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        if step is not None:
            self.step = step
        self.target = target
        self.cause = cause

    def __str__(self) -> str:
        text = super().__str__()
        if self.cause is not None:
            return f"{text} ({self.cause})"
        return text


class StackCreateFailed(DeploymentError):
    """The provider rejected the stack create request."""

    step = "create-stack"


class ExportNotFound(DeploymentError):
    """A mandatory stack export could not be resolved."""

    step = "find-export"


class ArtifactUploadFailed(DeploymentError):
    """A code artifact or the update template could not be uploaded."""

    step = "upload"


class StackUpdateFailed(DeploymentError):
    """The provider rejected the stack update request."""

    step = "update-stack"


class StackDeleteFailed(DeploymentError):
    """The provider rejected the stack delete request."""

    step = "delete-stack"


class StackOperationFailed(DeploymentError):
    """The stack reached the FAILED terminal status."""

    step = "poll-stack"


class StackPollFailed(DeploymentError):
    """Status queries kept failing beyond the allowed number of errors."""

    step = "poll-stack"


class StackPollTimeout(DeploymentError):
    """The stack did not reach a terminal status before the deadline."""

    step = "poll-stack"

    def __init__(
        self,
        message: str,
        target: str | None = None,
        timeout_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, target=target, details=details)
        self.timeout_seconds = timeout_seconds


class StackPollCancelled(DeploymentError):
    """Polling was cancelled by the caller."""

    step = "poll-stack"
