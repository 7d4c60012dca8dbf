"""
Reporting and output formatting for migration results.

Provides color-coded console output using Rich library, plus JSON export.
"""

import json
from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .manifest import CATALOG_REFERENCE

DEFAULT_WORKSPACE_FILE = "pnpm-workspace.yaml"
from .migrator import ManifestChangeLog, MigrationReport, RunStatus


class MigrationReporter:
    """Formats and displays migration reports."""

    def __init__(
        self,
        console: Optional[Console] = None,
        workspace_file: str = DEFAULT_WORKSPACE_FILE,
    ):
        self.console = console or Console()
        self.workspace_file = workspace_file

    def print_report(self, report: MigrationReport, workspace: str) -> None:
        """
        Print a migration report in a user-friendly format.

        Args:
            report: The report to display
            workspace: Workspace root shown in the header
        """
        self.console.print()
        self._print_header(workspace, report)

        if report.status == RunStatus.NO_WORKSPACE:
            self.console.print(
                f"ℹ️  {self.workspace_file} not found, nothing to do.", style="yellow"
            )
            return

        if report.conflicting:
            self._print_conflicting(report.conflicting)

        if report.status == RunStatus.NOTHING_SELECTED:
            self.console.print("ℹ️  No packages selected for catalog.", style="yellow")
            return

        self._print_selected(report.selected)
        self._print_manifest_changes(report.manifest_changes)

        if report.package_manager_update:
            self.console.print(
                f"⬆️  Updated package.json@packageManager to "
                f"[bold]{report.package_manager_update.new_value}[/bold] "
                f"[dim](was {report.package_manager_update.old_value})[/dim]"
            )

        self._print_footer(report)

    def _print_header(self, workspace: str, report: MigrationReport) -> None:
        title = "Catalog Migration (dry run)" if report.dry_run else "Catalog Migration"
        self.console.print(
            Panel(
                f"📦 Workspace: {workspace}",
                title=f"[bold blue]{title}[/bold blue]",
                border_style="blue",
            )
        )

    def _print_selected(self, selected: Dict[str, str]) -> None:
        table = Table(
            title="✅ Added packages to catalog", box=box.ROUNDED, title_style="bold green"
        )
        table.add_column("Package", style="bold")
        table.add_column("Specifier", style="green")

        for name, specifier in selected.items():
            table.add_row(name, specifier)

        self.console.print(table)
        self.console.print()

    def _print_conflicting(self, conflicting: Dict[str, List[str]]) -> None:
        lines = "\n".join(
            f"• {name} ({', '.join(specs)})" for name, specs in conflicting.items()
        )
        self.console.print(
            Panel(
                "The following packages were not moved to the catalog, because they "
                f"have multiple versions in the workspace:\n\n{lines}",
                title="[bold yellow]⚠️  Version conflicts[/bold yellow]",
                border_style="yellow",
            )
        )
        self.console.print()

    def _print_manifest_changes(self, logs: List[ManifestChangeLog]) -> None:
        for log in logs:
            self.console.print(f"[bold]Updated {log.name}[/bold] [dim]{log.path}[/dim]")
            for change in log.changes:
                self.console.print(f"  {change}", style="cyan")
        if logs:
            self.console.print()

    def _print_footer(self, report: MigrationReport) -> None:
        verb = "can be" if report.dry_run else "were"
        self.console.print(
            f"[bold green]{report.selected_count} packages {verb} safely moved "
            f"to the catalog.[/bold green]"
        )
        if report.conflicting_count:
            self.console.print(
                f"[yellow]Packages not moved due to version differences: "
                f"{report.conflicting_count}[/yellow]"
            )
        if report.dry_run:
            self.console.print(
                f"[dim]Dry run: no files written. Entries would become "
                f'"{CATALOG_REFERENCE}".[/dim]'
            )
        self.console.print(f"\n[dim]Completed in {report.duration_ms / 1000:.2f} seconds[/dim]")


def format_report_text(
    report: MigrationReport, workspace_file: str = DEFAULT_WORKSPACE_FILE
) -> str:
    """Plain-text summary, one line per item, for logs and CI output."""
    lines: List[str] = []

    if report.status == RunStatus.NO_WORKSPACE:
        return f"{workspace_file} not found"

    if report.conflicting:
        lines.append(
            "The following packages were not selected to move to the catalog, "
            "because they have multiple versions in the workspace:"
        )
        lines.extend(
            f"{name} ({', '.join(specs)})" for name, specs in report.conflicting.items()
        )
        lines.append("")

    if report.status == RunStatus.NOTHING_SELECTED:
        lines.append("No packages selected for catalog")
        return "\n".join(lines)

    lines.append("Added packages to catalog:")
    lines.extend(f"  {name}@{spec}" for name, spec in report.selected.items())
    lines.append("")

    for log in report.manifest_changes:
        lines.append(f"Updated {log.name}:")
        lines.extend(f"  {change}" for change in log.changes)
        lines.append("")

    if report.package_manager_update:
        lines.append(
            f"Updated package.json@packageManager to {report.package_manager_update.new_value}"
        )
        lines.append("")

    lines.append(f"{report.selected_count} packages were safely moved to the catalog.")
    if report.conflicting_count:
        lines.append(
            f"Packages not moved due to version differences: {report.conflicting_count}"
        )
    return "\n".join(lines)


def report_to_json(report: MigrationReport, workspace: str) -> str:
    """Serialize a report for automation."""
    data = {"workspace": workspace, **report.to_dict()}
    return json.dumps(data, indent=2, ensure_ascii=False)
