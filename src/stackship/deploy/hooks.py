"""Post-deployment function hooks."""

from collections.abc import Iterable

from stackship.core.exceptions import AWSError
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import HookResult
from stackship.deploy.providers.base import FunctionInvoker

logger = StructuredLogger(__name__)


class PostDeploymentHookRunner:
    """Fire named functions once the new stack is live."""

    def __init__(self, functions: FunctionInvoker):
        self._functions = functions

    def invoke(self, function_name: str) -> HookResult:
        """Queue one invocation without payload. Never raises for provider errors."""
        try:
            accepted = self._functions.invoke(function_name)
        except AWSError as e:
            logger.warning("After-deployment function failed", function=function_name, error=str(e))
            return HookResult(function_name=function_name, success=False, error=str(e))

        if not accepted:
            logger.warning("After-deployment function was not accepted", function=function_name)
            return HookResult(function_name=function_name, success=False, error="invocation not accepted")

        logger.debug("Invoked after-deployment function", function=function_name)
        return HookResult(function_name=function_name, success=True)

    def run(self, function_names: Iterable[str]) -> list[HookResult]:
        """Invoke each function in declaration order."""
        return [self.invoke(name) for name in function_names]
