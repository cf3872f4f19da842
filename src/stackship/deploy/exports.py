"""Cross-stack export resolution."""

from collections.abc import Iterable

from stackship.core.exceptions import AWSError, ExportNotFound
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import ExportBinding, ExportLookup, ResolvedOutputs
from stackship.deploy.providers.base import StackProvider

logger = StructuredLogger(__name__)


class ExportResolver:
    """Look up stack exports.

    A miss is reported, not raised: callers decide whether an export is
    mandatory (``require``) or optional (``resolve_bindings``).
    """

    def __init__(self, stacks: StackProvider):
        self._stacks = stacks

    def find_export(self, name: str) -> ExportLookup:
        """Look up a single export by its global name."""
        return self._stacks.find_export(name)

    def require(self, name: str, reason: str = "Unable to find export") -> str:
        """Resolve an export that the workflow cannot continue without.

        Args:
            name: Export name
            reason: Message used if the export is missing

        Returns:
            The export value

        Raises:
            ExportNotFound: If the export is missing or the lookup failed
        """
        try:
            lookup = self.find_export(name)
        except AWSError as e:
            raise ExportNotFound(reason, target=name, cause=e)

        if not lookup.found:
            raise ExportNotFound(reason, target=name)
        return lookup.value

    def resolve_bindings(self, bindings: Iterable[ExportBinding]) -> ResolvedOutputs:
        """Resolve optional export bindings, skipping any that cannot be found."""
        substitutions: dict[str, str] = {}
        messages: list[tuple[str, str]] = []

        for binding in bindings:
            try:
                lookup = self.find_export(binding.export_name)
            except AWSError as e:
                logger.warning("Export lookup failed", export=binding.export_name, error=str(e))
                continue

            if not lookup.found:
                logger.debug("Export not found, skipping", export=binding.export_name)
                continue

            substitutions[binding.substitution_variable] = lookup.value
            messages.append((binding.export_message, lookup.value))

        return ResolvedOutputs(substitutions=substitutions, messages=tuple(messages))
