"""Main CLI entry point for stackship."""

import sys
from typing import Any

import click
from rich.console import Console

from stackship import __version__
from stackship.config import load_config
from stackship.core.context import StackshipContext
from stackship.core.output import OutputFormat
from stackship.core.exceptions import StackshipError, ConfigError


CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"stackship version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-p",
    "--profile",
    metavar="NAME",
    envvar="STACKSHIP_PROFILE",
    help="Configuration profile to use",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would happen without making changes",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    metavar="FILE",
    envvar="STACKSHIP_CONFIG",
    help="Path to config file",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str | None,
    output_format: OutputFormat | None,
    verbose: int,
    quiet: bool,
    dry_run: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """stackship - deploy packaged serverless projects to CloudFormation.

    Reads the deployment descriptor and templates generated by the build,
    creates or updates the stage's stack, uploads code and files, and runs
    after-deployment functions.

    \b
    Examples:
        stackship deploy --stage dev
        stackship deploy --stage prod --region eu-west-2
        stackship destroy --stage dev --yes

    \b
    Configuration:
        ~/.stackship/config.yaml    User configuration
        ./stackship.yaml            Project configuration
        STACKSHIP_*                 Environment variables
    """
    try:
        config = load_config(config_file, profile)

        ctx.obj = StackshipContext(
            config=config,
            profile=profile,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            dry_run=dry_run,
            color=not no_color,
        )

        if dry_run and not quiet:
            ctx.obj.output.print_warning("Dry-run mode enabled - no changes will be made")

    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def register_commands() -> None:
    """Register all commands."""
    from stackship.commands.stack import deploy, destroy

    cli.add_command(deploy)
    cli.add_command(destroy)


register_commands()


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    stackship_ctx: StackshipContext = ctx.obj
    deploy_config = stackship_ctx.profile.deploy
    config_data = {
        "profile": stackship_ctx.profile_name,
        "output_format": stackship_ctx.output_format.value,
        "dry_run": stackship_ctx.dry_run,
        "aws_profile": stackship_ctx.profile.aws.get_profile(),
        "aws_region": stackship_ctx.profile.aws.get_region(),
        "stage": deploy_config.get_stage(),
        "compiled_source_path": deploy_config.compiled_source_path,
        "bucket_export_suffix": deploy_config.bucket_export_suffix,
        "poll_deadline": deploy_config.poll.deadline,
    }
    stackship_ctx.output.print_data(config_data, title="Current Configuration")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except StackshipError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
