"""Naming conventions for stacks and their exports."""

from stackship.core.exceptions import ConfigError


def resource_name(project: str, stage: str, suffix: str | None = None) -> str:
    """Build a ``<project>-<stage>[-<suffix>]`` identifier.

    Args:
        project: Project name from the deployment descriptor
        stage: Target stage
        suffix: Optional trailing component

    Returns:
        The joined identifier
    """
    if not project:
        raise ConfigError("Project name must not be empty")
    if not stage:
        raise ConfigError("Stage must not be empty")

    parts = [project, stage]
    if suffix:
        parts.append(suffix)
    return "-".join(parts)


def stack_name(project: str, stage: str) -> str:
    """Name of the stack holding a project's stage."""
    return resource_name(project, stage)


def export_name(project: str, stage: str, suffix: str) -> str:
    """Name of a stack export published under the project's stage."""
    return resource_name(project, stage, suffix)


def template_file_name(prefix: str, stage: str) -> str:
    """File name of a generated template, e.g. ``cloudformation-stack-update-dev.json``."""
    return f"{prefix}-{stage}.json"
