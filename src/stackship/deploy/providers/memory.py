"""In-memory providers.

They keep every call they receive so tests can assert on the exact sequence
of remote operations a workflow performed.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stackship.core.exceptions import AWSError
from stackship.deploy.models import CreateStackResult, ExportLookup, StackStatus
from stackship.deploy.providers.base import (
    FunctionInvoker,
    ObjectStore,
    StackProvider,
)


@dataclass
class _PendingOperation:
    in_progress: StackStatus
    final: StackStatus
    remaining_polls: int


class InMemoryStackProvider(StackProvider):
    """Stack provider that settles each operation after a number of polls."""

    def __init__(
        self,
        exports: dict[str, str] | None = None,
        existing: dict[str, StackStatus] | None = None,
        polls_before_complete: int = 1,
    ):
        self.exports: dict[str, str] = dict(exports or {})
        self.stacks: dict[str, StackStatus] = dict(existing or {})
        self.polls_before_complete = polls_before_complete
        self.calls: list[tuple[str, str]] = []

        self.reject_create = False
        self.reject_update = False
        self.reject_delete = False
        # Final status to use instead of *_COMPLETE for the next operation
        self.outcomes: dict[str, StackStatus] = {}
        # Scripted get_status answers (StackStatus or exception), consumed first
        self.status_script: dict[str, list[Any]] = {}

        self._pending: dict[str, _PendingOperation] = {}

    def calls_to(self, operation: str) -> list[str]:
        return [target for op, target in self.calls if op == operation]

    def _start(self, name: str, in_progress: StackStatus, final: StackStatus) -> None:
        final = self.outcomes.pop(name, final)
        self.stacks[name] = in_progress
        self._pending[name] = _PendingOperation(in_progress, final, self.polls_before_complete)

    def create_stack(self, name: str, stage: str, template_path: str | Path) -> CreateStackResult:
        self.calls.append(("create_stack", name))
        if self.reject_create:
            return CreateStackResult(accepted=False, error="create rejected")
        if self.stacks.get(name, StackStatus.NOT_EXISTS) not in (
            StackStatus.NOT_EXISTS,
            StackStatus.DELETE_COMPLETE,
        ):
            return CreateStackResult(accepted=True, already_exists=True)
        self._start(name, StackStatus.CREATE_IN_PROGRESS, StackStatus.CREATE_COMPLETE)
        return CreateStackResult(accepted=True)

    def update_stack(self, name: str, template_url: str) -> bool:
        self.calls.append(("update_stack", name))
        if self.reject_update or name not in self.stacks:
            return False
        self._start(name, StackStatus.UPDATE_IN_PROGRESS, StackStatus.UPDATE_COMPLETE)
        return True

    def delete_stack(self, name: str) -> bool:
        self.calls.append(("delete_stack", name))
        if self.reject_delete:
            return False
        self._start(name, StackStatus.DELETE_IN_PROGRESS, StackStatus.DELETE_COMPLETE)
        return True

    def get_status(self, name: str) -> StackStatus:
        self.calls.append(("get_status", name))

        script = self.status_script.get(name)
        if script:
            answer = script.pop(0)
            if isinstance(answer, BaseException):
                raise answer
            return answer

        pending = self._pending.get(name)
        if pending is not None:
            if pending.remaining_polls > 0:
                pending.remaining_polls -= 1
                return pending.in_progress
            del self._pending[name]
            self.stacks[name] = pending.final

        return self.stacks.get(name, StackStatus.NOT_EXISTS)

    def find_export(self, name: str) -> ExportLookup:
        self.calls.append(("find_export", name))
        if name in self.exports:
            return ExportLookup(found=True, value=self.exports[name])
        return ExportLookup.missing()


class InMemoryObjectStore(ObjectStore):
    """Object store holding bucket contents in dictionaries."""

    def __init__(self):
        self.buckets: dict[str, dict[str, bytes]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.fail_keys: set[str] = set()
        self.fail_buckets: set[str] = set()

    def uploaded_keys(self) -> list[str]:
        return [key for op, _, key in self.calls if op in ("put_file", "put_content")]

    def _store(self, bucket: str, key: str, content: bytes) -> bool:
        if key in self.fail_keys or bucket in self.fail_buckets:
            return False
        self.buckets.setdefault(bucket, {})[key] = content
        return True

    def put_file(self, bucket: str, local_path: str | Path, key: str) -> bool:
        self.calls.append(("put_file", bucket, key))
        try:
            content = Path(local_path).read_bytes()
        except OSError:
            return False
        return self._store(bucket, key, content)

    def put_content(self, bucket: str, content: bytes, key: str) -> bool:
        self.calls.append(("put_content", bucket, key))
        return self._store(bucket, key, content)

    def get_url(self, bucket: str, key: str) -> str:
        return f"memory://{bucket}/{key}"

    def empty_and_delete_bucket(self, bucket: str) -> bool:
        self.calls.append(("empty_and_delete_bucket", bucket, ""))
        if bucket in self.fail_buckets:
            return False
        self.buckets.pop(bucket, None)
        return True


class InMemoryFunctionInvoker(FunctionInvoker):
    """Function invoker recording invocations in order."""

    def __init__(self, failing: set[str] | None = None):
        self.invoked: list[str] = []
        self.failing: set[str] = set(failing or ())

    def invoke(self, name: str) -> bool:
        self.invoked.append(name)
        if name in self.failing:
            raise AWSError(f"ResourceNotFoundException: Function not found: {name}", service="lambda")
        return True
