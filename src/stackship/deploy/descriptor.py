"""Deployment descriptor loading."""

import json
from pathlib import Path

from pydantic import ValidationError

from stackship.core.exceptions import DescriptorError
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import DeploymentDescriptor

logger = StructuredLogger(__name__)

DEFAULT_DESCRIPTOR_FILE = "nimbus-state.json"


class DescriptorLoader:
    """Read the descriptor the build wrote next to the generated templates."""

    def __init__(self, file_name: str = DEFAULT_DESCRIPTOR_FILE):
        self._file_name = file_name

    def path_for(self, compiled_source_path: str | Path) -> Path:
        return Path(compiled_source_path) / self._file_name

    def load(self, compiled_source_path: str | Path) -> DeploymentDescriptor:
        """Load and validate the deployment descriptor.

        Args:
            compiled_source_path: Directory holding generated build outputs

        Returns:
            Parsed DeploymentDescriptor
        """
        descriptor_file = self.path_for(compiled_source_path)

        if not descriptor_file.exists():
            raise DescriptorError(
                f"Deployment descriptor not found: {descriptor_file}. Has the project been built?",
                path=str(descriptor_file),
            )

        try:
            with open(descriptor_file) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DescriptorError(
                f"Failed to read deployment descriptor: {e}",
                path=str(descriptor_file),
            )

        try:
            descriptor = DeploymentDescriptor.model_validate(data)
        except ValidationError as e:
            raise DescriptorError(
                f"Invalid deployment descriptor {descriptor_file}: {e}",
                path=str(descriptor_file),
            )

        logger.debug(
            "Loaded deployment descriptor",
            project=descriptor.project_name,
            handlers=len(descriptor.handlers),
        )
        return descriptor
