"""Core utilities and shared components for stackship."""

# Note: Import context lazily to avoid circular imports
# Use: from stackship.core.context import StackshipContext, pass_context
from stackship.core.exceptions import StackshipError, ConfigError, AWSError, DeploymentError
from stackship.core.output import OutputFormatter, console

__all__ = [
    "StackshipError",
    "ConfigError",
    "AWSError",
    "DeploymentError",
    "OutputFormatter",
    "console",
]
