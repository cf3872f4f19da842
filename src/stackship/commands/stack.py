"""Deploy and destroy commands."""

from typing import Any

import click

from stackship.config import DeployConfig
from stackship.core.context import pass_context, StackshipContext
from stackship.core.exceptions import StackshipError
from stackship.core.output import OutputFormat, format_duration
from stackship.deploy import DeploymentOrchestrator, DeploymentReport
from stackship.deploy.providers.aws import aws_providers

DEFAULT_REGION = "eu-west-1"


def target_options(func: Any) -> Any:
    """Options shared by deploy and destroy."""
    options = [
        click.option("--region", "-r", help="AWS region (default: eu-west-1)"),
        click.option("--stage", "-s", help="Target stage (default: dev)"),
        click.option(
            "--compiled-source-path",
            metavar="DIR",
            help="Directory with the generated templates and deployment descriptor",
        ),
        click.option(
            "--timeout",
            type=float,
            metavar="SECONDS",
            help="Give up waiting for the stack after this long",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _deploy_config(ctx: StackshipContext, **overrides: Any) -> DeployConfig:
    """Profile deploy settings with command-line overrides applied."""
    base = ctx.profile.deploy
    timeout = overrides.pop("timeout", None)
    update = {k: v for k, v in overrides.items() if v is not None}
    update.setdefault("stage", base.get_stage())
    if timeout is not None:
        update["poll"] = base.poll.model_copy(update={"deadline": timeout})
    return base.model_copy(update=update)


def _region(ctx: StackshipContext, region: str | None) -> str:
    return region or ctx.profile.aws.get_region() or DEFAULT_REGION


def _print_report(ctx: StackshipContext, report: DeploymentReport) -> None:
    if ctx.output_format != OutputFormat.TABLE:
        ctx.output.print_data(report.to_dict())
        return

    for warning in report.warnings:
        ctx.output.print_warning(warning)

    duration = report.duration_seconds
    took = f" in {format_duration(duration)}" if duration is not None else ""
    verb = "Deployed" if report.action == "deploy" else "Destroyed"
    ctx.output.print_success(f"{verb} {report.stack_name}{took}")

    for message, value in report.outputs:
        ctx.output.print(f"{message}{value}")


@click.command()
@target_options
@click.option("--lambda-path", metavar="FILE", help="Single deployable artifact")
@click.option("--assembled-dir", metavar="DIR", help="Directory of assembled handler artifacts")
@pass_context
def deploy(
    ctx: StackshipContext,
    region: str | None,
    stage: str | None,
    compiled_source_path: str | None,
    timeout: float | None,
    lambda_path: str | None,
    assembled_dir: str | None,
) -> None:
    """Create or update the project's stack and upload its artifacts.

    \b
    Examples:
        stackship deploy
        stackship deploy --stage prod --region eu-west-2
        stackship deploy --lambda-path build/functions.zip --timeout 1800
    """
    config = _deploy_config(
        ctx,
        stage=stage,
        compiled_source_path=compiled_source_path,
        lambda_path=lambda_path,
        assembled_dir=assembled_dir,
        timeout=timeout,
    )
    region = _region(ctx, region)

    try:
        orchestrator = DeploymentOrchestrator(aws_providers(ctx.aws(region)), config)
        descriptor = orchestrator.load_descriptor()

        if ctx.dry_run:
            plan = orchestrator.plan(descriptor)
            ctx.log_dry_run("deploy", {"stack": plan["stack"], "region": region})
            ctx.output.print_data(plan, title="Deployment plan")
            return

        report = orchestrator.deploy(descriptor)
        _print_report(ctx, report)

    except StackshipError as e:
        ctx.output.print_error(f"Deployment failed: {e}")
        raise click.Abort()


@click.command()
@target_options
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@pass_context
def destroy(
    ctx: StackshipContext,
    region: str | None,
    stage: str | None,
    compiled_source_path: str | None,
    timeout: float | None,
    yes: bool,
) -> None:
    """Empty the deployment bucket and delete the project's stack.

    \b
    Examples:
        stackship destroy --stage dev
        stackship destroy --stage test --yes
    """
    config = _deploy_config(
        ctx,
        stage=stage,
        compiled_source_path=compiled_source_path,
        timeout=timeout,
    )
    region = _region(ctx, region)

    try:
        orchestrator = DeploymentOrchestrator(aws_providers(ctx.aws(region)), config)
        descriptor = orchestrator.load_descriptor()
        target = orchestrator.plan(descriptor)["stack"]

        if ctx.dry_run:
            ctx.log_dry_run("destroy", {"stack": target, "region": region})
            return

        confirm = ctx.config.global_settings.confirm_destructive
        if confirm and not yes and not ctx.confirm(f"Delete stack {target} and everything in it?"):
            ctx.output.print_info("Cancelled")
            return

        report = orchestrator.destroy(descriptor)
        _print_report(ctx, report)

    except StackshipError as e:
        ctx.output.print_error(f"Destroy failed: {e}")
        raise click.Abort()
