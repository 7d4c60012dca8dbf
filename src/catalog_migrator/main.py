import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .cli_config import (
    build_config,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .error_handling import CatalogMigratorError, setup_error_handling
from .migrator import MigrationReport, RunStatus, run_migration
from .reporting import MigrationReporter, format_report_text, report_to_json
from .structured_logging import configure_logging
from .workspace import FileSystemWorkspace

console = Console()


def output_json_results(
    report: MigrationReport, workspace: str, output_file: Optional[str] = None
) -> None:
    """Export a report as JSON."""
    json_output = report_to_json(report, workspace)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(json_output)
        console.print(f"✅ Report saved to {output_file}", style="green")
    else:
        click.echo(json_output)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    📦 catalog-migrator: move shared dependency versions into the pnpm catalog

    Finds dependencies pinned to the same specifier across every workspace
    package, records them once in pnpm-workspace.yaml and points each
    package.json at "catalog:".
    """
    if version:
        console.print(f"catalog-migrator version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, dir_okay=True),
    default=".",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would change without writing files or installing",
)
@click.option(
    "--no-install",
    is_flag=True,
    help="Skip the package manager install step after writing files",
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "text", "json"], case_sensitive=False),
    default="console",
    help="Output format for the report",
    show_default=True,
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(),
    help="Save the report to a file (JSON format only)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output with structured log events",
)
def migrate(
    root: str,
    dry_run: bool,
    no_install: bool,
    output_format: str,
    output_file: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Consolidate dependency versions of the workspace at ROOT into its catalog.

    Examples:

      catalog-migrator migrate

      catalog-migrator migrate path/to/monorepo --dry-run

      catalog-migrator migrate --no-install --output-format json -o report.json
    """
    try:
        config = load_config()

        if output_file and output_format != "json":
            raise click.ClickException("Output file can only be used with JSON format")

        log_level = "DEBUG" if verbose else config.logging.log_level
        configure_logging(log_level, enable_json=config.logging.enable_json)
        setup_error_handling(logger_name="catalog_migrator.errors")

        migration = replace(
            config.migration,
            dry_run=dry_run or config.migration.dry_run,
            install=config.migration.install and not no_install,
        )

        workspace = FileSystemWorkspace(
            Path(root),
            settings=config.workspace,
            install_command=migration.install_command,
        )

        if not quiet and output_format == "console":
            console.print(
                Panel(
                    f"📦 [bold blue]catalog-migrator[/bold blue] v{__version__}",
                    border_style="blue",
                )
            )

        report = run_migration(workspace, migration)

        if output_format == "json":
            output_json_results(report, str(workspace.root), output_file)
        elif output_format == "text":
            click.echo(format_report_text(report, config.workspace.workspace_file))
        elif not quiet:
            MigrationReporter(console, config.workspace.workspace_file).print_report(
                report, str(workspace.root)
            )
        elif report.status == RunStatus.COMPLETED:
            console.print(
                f"✅ {report.selected_count} packages moved to the catalog", style="green"
            )

    except click.ClickException:
        raise
    except KeyboardInterrupt:
        Console(stderr=True).print("\n⚠️  Migration interrupted by user", style="yellow")
        sys.exit(130)
    except CatalogMigratorError as e:
        Console(stderr=True).print(f"❌ Error: {str(e)}", style="red")
        sys.exit(1)


@cli.command()
def info():
    """Show what the migration does and how it is configured."""
    info_text = """
[bold blue]📋 Files:[/bold blue]

• [green]pnpm-workspace.yaml[/green] - package patterns and the [cyan]catalog[/cyan] section
• [green]package.json[/green] - dependencies, devDependencies, optionalDependencies

[bold blue]🔍 Selection Rules:[/bold blue]

• A dependency moves to the catalog when every package uses the [yellow]same specifier string[/yellow]
• [yellow]workspace:*[/yellow] entries and non-semver specifiers are ignored
• [yellow]npm:[/yellow] aliases count as their own specifier
• Dependencies with differing specifiers are reported and left alone

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]CATALOG_MIGRATOR_TOOL_NAME[/cyan] - Package manager named in packageManager
• [cyan]CATALOG_MIGRATOR_MIN_TOOL_VERSION[/cyan] - Minimum packageManager version
• [cyan]CATALOG_MIGRATOR_SKIP_INSTALL[/cyan] - Do not run the install step
• [cyan]CATALOG_MIGRATOR_DRY_RUN[/cyan] - Report without writing
• [cyan]CATALOG_MIGRATOR_LOG_LEVEL[/cyan] - Structured log level

[bold blue]📄 Configuration Files:[/bold blue]

• [green].catalog-migrator.json[/green] / [green].catalog-migrator.yaml[/green] - Project-level config
• [green]~/.config/catalog-migrator/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  # Preview the migration
  catalog-migrator migrate --dry-run

  # Migrate without running pnpm install
  catalog-migrator migrate --no-install

  # JSON report for automation
  catalog-migrator migrate --output-format json -o report.json
"""
    console.print(
        Panel(
            info_text,
            title="[bold]catalog-migrator Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".catalog-migrator.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")
    console.print("Edit this file to customize your settings", style="dim")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🔁 Migration Settings:[/bold cyan]")
    console.print(f"  Tool: {current_config.migration.tool_name}")
    console.print(
        f"  Minimum Tool Version: {current_config.migration.minimum_tool_version}"
    )
    console.print(f"  Run Install: {current_config.migration.install}")
    console.print(
        f"  Install Command: {' '.join(current_config.migration.install_command)}"
    )
    console.print(f"  Dry Run: {current_config.migration.dry_run}")

    console.print("\n[bold cyan]📁 Workspace Settings:[/bold cyan]")
    console.print(f"  Workspace File: {current_config.workspace.workspace_file}")
    console.print(f"  Manifest File: {current_config.workspace.manifest_file}")
    console.print(
        f"  Ignore Patterns: {', '.join(current_config.workspace.ignore_patterns)}"
    )
    console.print(f"  JSON Indent: {current_config.workspace.json_indent}")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(f"  JSON Events: {current_config.logging.enable_json}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        raise click.ClickException(f"Could not load config from {config_file}")

    errors = validate_config_values(build_config(config_data))
    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
