"""
catalog-migrator: consolidate pnpm workspace dependency versions into the
workspace catalog.
"""

__version__ = "1.0.0"

from .catalog import merge_catalog
from .migrator import MigrationReport, RunStatus, run_migration
from .plan import MigrationPlan, apply_plan, build_plan
from .rewriter import rewrite_manifest
from .scanner import collect_versions
from .selector import ConsolidationDecision, select_consolidation
from .version_guard import guard_tool_version
from .workspace import FileSystemWorkspace, Workspace

__all__ = [
    "__version__",
    "ConsolidationDecision",
    "FileSystemWorkspace",
    "MigrationPlan",
    "MigrationReport",
    "RunStatus",
    "Workspace",
    "apply_plan",
    "build_plan",
    "collect_versions",
    "guard_tool_version",
    "merge_catalog",
    "rewrite_manifest",
    "run_migration",
    "select_consolidation",
]
