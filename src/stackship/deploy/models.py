"""Deployment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StackStatus(str, Enum):
    """Normalized stack status."""

    NOT_EXISTS = "NOT_EXISTS"
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Check if no further automatic transition will happen."""
        return self in (
            StackStatus.CREATE_COMPLETE,
            StackStatus.UPDATE_COMPLETE,
            StackStatus.DELETE_COMPLETE,
            StackStatus.FAILED,
        )

    @property
    def is_in_progress(self) -> bool:
        """Check if the stack is mid-operation."""
        return self in (
            StackStatus.CREATE_IN_PROGRESS,
            StackStatus.UPDATE_IN_PROGRESS,
            StackStatus.DELETE_IN_PROGRESS,
        )

    @classmethod
    def from_cloudformation(cls, raw: str) -> "StackStatus":
        """Map a raw CloudFormation ``StackStatus`` onto the normalized set.

        Args:
            raw: Status string as returned by ``DescribeStacks``

        Returns:
            Normalized status
        """
        if raw.endswith("_FAILED") or raw.endswith("ROLLBACK_COMPLETE"):
            return cls.FAILED
        if raw in (
            "CREATE_COMPLETE",
            "UPDATE_COMPLETE",
            "DELETE_COMPLETE",
        ):
            return cls(raw)
        if raw == "IMPORT_COMPLETE":
            return cls.UPDATE_COMPLETE
        if raw.startswith("DELETE_"):
            return cls.DELETE_IN_PROGRESS
        if raw in ("CREATE_IN_PROGRESS", "REVIEW_IN_PROGRESS", "ROLLBACK_IN_PROGRESS"):
            # A create that rolls back ends in ROLLBACK_COMPLETE, i.e. FAILED
            return cls.CREATE_IN_PROGRESS
        if raw.endswith("_IN_PROGRESS"):
            return cls.UPDATE_IN_PROGRESS
        raise ValueError(f"Unknown CloudFormation stack status: {raw}")


# Deployment descriptor (persisted by the build, read once per run)


class _DescriptorModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class HandlerInfo(_DescriptorModel):
    """One independently deployable artifact."""

    handler_file: str = Field(alias="handlerFile")


class ExportBinding(_DescriptorModel):
    """Stack export surfaced to the operator and substituted into uploads."""

    export_name: str = Field(alias="exportName")
    substitution_variable: str = Field(alias="substitutionVariable")
    export_message: str = Field(default="", alias="exportMessage")


class FileUploadSpec(_DescriptorModel):
    """A local file or directory pushed to a bucket after deployment."""

    local_file: str = Field(alias="localFile")
    target_file: str = Field(default="", alias="targetFile")
    substitute_variables: bool = Field(default=False, alias="substituteVariables")


class DeploymentDescriptor(_DescriptorModel):
    """Everything the build recorded about the project to deploy."""

    project_name: str = Field(alias="projectName", min_length=1)
    compilation_timestamp: str = Field(default="", alias="compilationTimeStamp")
    assemble: bool = False
    handlers: list[HandlerInfo] = Field(default_factory=list, alias="handlerFiles")
    exports: dict[str, list[ExportBinding]] = Field(default_factory=dict)
    file_uploads: dict[str, dict[str, list[FileUploadSpec]]] = Field(
        default_factory=dict, alias="fileUploads"
    )
    after_deploy: dict[str, list[str]] = Field(default_factory=dict, alias="afterDeployments")

    def exports_for(self, stage: str) -> list[ExportBinding]:
        return list(self.exports.get(stage, []))

    def file_uploads_for(self, stage: str) -> dict[str, list[FileUploadSpec]]:
        return dict(self.file_uploads.get(stage, {}))

    def hooks_for(self, stage: str) -> list[str]:
        return list(self.after_deploy.get(stage, []))


# Provider and step results


@dataclass(frozen=True)
class CreateStackResult:
    """Provider answer to a create request."""

    accepted: bool
    already_exists: bool = False
    error: str | None = None


@dataclass(frozen=True)
class EnsureCreatedResult:
    """Outcome of making sure a stack exists."""

    created: bool
    already_existed: bool
    status: StackStatus | None = None


@dataclass(frozen=True)
class ExportLookup:
    """Result of a stack export lookup. A miss is not an error."""

    found: bool
    value: str = ""

    @classmethod
    def missing(cls) -> "ExportLookup":
        return cls(found=False)


@dataclass(frozen=True)
class ResolvedOutputs:
    """Export values resolved after an update.

    ``substitutions`` maps substitution tokens to values; ``messages`` keeps
    operator-facing (message, value) pairs in declaration order.
    """

    substitutions: dict[str, str] = field(default_factory=dict)
    messages: tuple[tuple[str, str], ...] = ()

    @classmethod
    def empty(cls) -> "ResolvedOutputs":
        return cls()


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one best-effort object upload."""

    bucket: str
    key: str
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class HookResult:
    """Outcome of one post-deployment invocation."""

    function_name: str
    success: bool
    error: str | None = None


@dataclass
class DeploymentReport:
    """Summary of a deploy or destroy run."""

    stack_name: str
    stage: str
    action: str = "deploy"
    success: bool = False
    created: bool = False
    final_status: StackStatus | None = None
    bucket: str | None = None
    outputs: tuple[tuple[str, str], ...] = ()
    uploads: list[UploadResult] = field(default_factory=list)
    hooks: list[HookResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stack_name": self.stack_name,
            "stage": self.stage,
            "action": self.action,
            "success": self.success,
            "created": self.created,
            "final_status": self.final_status.value if self.final_status else None,
            "bucket": self.bucket,
            "outputs": [{"message": m, "value": v} for m, v in self.outputs],
            "uploads": [
                {"bucket": u.bucket, "key": u.key, "success": u.success, "error": u.error}
                for u in self.uploads
            ],
            "hooks": [
                {"function": h.function_name, "success": h.success, "error": h.error}
                for h in self.hooks
            ],
            "warnings": self.warnings,
            "duration_seconds": self.duration_seconds,
        }
