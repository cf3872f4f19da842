"""Provider interfaces consumed by the deployment core."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from stackship.deploy.models import CreateStackResult, ExportLookup, StackStatus


class StackProvider(ABC):
    """Infrastructure stack management.

    Query methods raise ``AWSError`` when the provider cannot be reached;
    submission methods report rejection through their return value.
    """

    @abstractmethod
    def create_stack(self, name: str, stage: str, template_path: str | Path) -> CreateStackResult:
        """Submit a create request from a local template file."""
        pass

    @abstractmethod
    def update_stack(self, name: str, template_url: str) -> bool:
        """Submit an update referencing an uploaded template."""
        pass

    @abstractmethod
    def delete_stack(self, name: str) -> bool:
        """Submit a delete request."""
        pass

    @abstractmethod
    def get_status(self, name: str) -> StackStatus:
        """Query the current stack status."""
        pass

    @abstractmethod
    def find_export(self, name: str) -> ExportLookup:
        """Look up a cross-stack export by name."""
        pass


class ObjectStore(ABC):
    """Object storage for artifacts and templates."""

    @abstractmethod
    def put_file(self, bucket: str, local_path: str | Path, key: str) -> bool:
        """Upload a local file as-is."""
        pass

    @abstractmethod
    def put_content(self, bucket: str, content: bytes, key: str) -> bool:
        """Upload in-memory content."""
        pass

    @abstractmethod
    def get_url(self, bucket: str, key: str) -> str:
        """URL under which the provider can read the object."""
        pass

    @abstractmethod
    def empty_and_delete_bucket(self, bucket: str) -> bool:
        """Remove every object (and version) from a bucket, then the bucket itself."""
        pass


class FunctionInvoker(ABC):
    """Function invocation, fire-and-forget."""

    @abstractmethod
    def invoke(self, name: str) -> bool:
        """Queue an invocation without payload; returns whether it was accepted."""
        pass


@dataclass(frozen=True)
class ProviderSet:
    """The three providers a deployment run talks to."""

    stacks: StackProvider
    store: ObjectStore
    functions: FunctionInvoker
