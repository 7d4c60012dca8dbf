"""
Migration orchestration.

Runs the pipeline against a workspace and returns a report value; display is
left to the caller.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .cli_config import MigrationConfig
from .plan import MigrationPlan, apply_plan, build_plan
from .structured_logging import (
    log_migration_aborted,
    log_migration_complete,
    log_migration_start,
)
from .version_guard import ToolVersionUpdate
from .workspace import Workspace


class RunStatus(Enum):
    """Outcome of a migration run."""

    COMPLETED = "COMPLETED"
    NO_WORKSPACE = "NO_WORKSPACE"  # Workspace file missing, nothing touched
    NOTHING_SELECTED = "NOTHING_SELECTED"  # No consolidatable dependency


@dataclass(frozen=True)
class ManifestChangeLog:
    """Human-readable change lines for one manifest."""

    name: str
    path: str
    changes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MigrationReport:
    """Result of a migration run."""

    status: RunStatus
    selected: Dict[str, str] = field(default_factory=dict)
    conflicting: Dict[str, List[str]] = field(default_factory=dict)
    manifest_changes: List[ManifestChangeLog] = field(default_factory=list)
    package_manager_update: Optional[ToolVersionUpdate] = None
    manifest_count: int = 0
    dry_run: bool = False
    installed: bool = False
    duration_ms: int = 0

    @property
    def selected_count(self) -> int:
        return len(self.selected)

    @property
    def conflicting_count(self) -> int:
        return len(self.conflicting)

    @property
    def aborted(self) -> bool:
        return self.status != RunStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "dry_run": self.dry_run,
            "installed": self.installed,
            "manifest_count": self.manifest_count,
            "duration_ms": self.duration_ms,
            "summary": {
                "selected": self.selected_count,
                "conflicting": self.conflicting_count,
                "manifests_changed": len(self.manifest_changes),
            },
            "selected": dict(self.selected),
            "conflicting": {name: list(specs) for name, specs in self.conflicting.items()},
            "manifest_changes": [
                {"name": log.name, "path": log.path, "changes": list(log.changes)}
                for log in self.manifest_changes
            ],
            "package_manager_update": (
                {
                    "old": self.package_manager_update.old_value,
                    "new": self.package_manager_update.new_value,
                }
                if self.package_manager_update
                else None
            ),
        }


def _report_from_plan(
    plan: MigrationPlan,
    status: RunStatus,
    dry_run: bool,
    started: float,
    installed: bool = False,
) -> MigrationReport:
    return MigrationReport(
        status=status,
        selected=dict(plan.decision.selected),
        conflicting={n: list(s) for n, s in plan.decision.conflicting.items()},
        manifest_changes=[
            ManifestChangeLog(
                name=update.name,
                path=str(update.handle),
                changes=[change.describe() for change in update.changes],
            )
            for update in plan.changed_manifests
        ],
        package_manager_update=plan.root_update.update if plan.root_update else None,
        manifest_count=plan.manifest_count,
        dry_run=dry_run,
        installed=installed,
        duration_ms=int((time.time() - started) * 1000),
    )


def run_migration(
    workspace: Workspace, config: Optional[MigrationConfig] = None
) -> MigrationReport:
    """
    Consolidate workspace dependency versions into the catalog.

    Sequence: read the workspace file (stop if absent), scan and select
    (stop if nothing is selected), write the catalog, write manifests, bump
    the root packageManager if too old, then run the install step.

    Raises:
        InstallError: The install step failed after all files were written
        WorkspaceWriteError: A file could not be written
    """
    config = config or MigrationConfig()
    started = time.time()
    log_migration_start(f"run_{uuid.uuid4().hex[:12]}", workspace.description, config.dry_run)

    plan = build_plan(
        workspace, tool=config.tool_name, minimum_version=config.minimum_tool_version
    )

    if not plan.workspace_found:
        log_migration_aborted("workspace_file_not_found")
        return _report_from_plan(plan, RunStatus.NO_WORKSPACE, config.dry_run, started)

    if not plan.decision.has_selection:
        log_migration_aborted(
            "nothing_selected", conflicting_count=len(plan.decision.conflicting)
        )
        return _report_from_plan(plan, RunStatus.NOTHING_SELECTED, config.dry_run, started)

    if config.dry_run:
        report = _report_from_plan(plan, RunStatus.COMPLETED, True, started)
        log_migration_complete(
            report.duration_ms,
            report.selected_count,
            report.conflicting_count,
            len(report.manifest_changes),
        )
        return report

    apply_plan(plan, workspace)

    installed = False
    if config.install:
        workspace.run_install()
        installed = True

    report = _report_from_plan(plan, RunStatus.COMPLETED, False, started, installed)
    log_migration_complete(
        report.duration_ms,
        report.selected_count,
        report.conflicting_count,
        len(report.manifest_changes),
    )
    return report
