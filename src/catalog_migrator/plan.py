"""
Two-phase migration: build an immutable plan from a workspace snapshot, then
apply its writes in one pass.

Every decision is taken in ``build_plan``; ``apply_plan`` only writes, so no
file is read after another file has been written in the same run.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .catalog import update_workspace_catalog
from .manifest import Manifest, ManifestHandle, WorkspaceConfig
from .rewriter import ChangeRecord, rewrite_manifest
from .scanner import collect_versions
from .selector import ConsolidationDecision, select_consolidation
from .structured_logging import get_workspace_logger, log_manifest_rewrite
from .version_guard import (
    DEFAULT_MINIMUM_VERSION,
    DEFAULT_TOOL,
    ToolVersionUpdate,
    guard_tool_version,
)
from .workspace import Workspace


@dataclass(frozen=True)
class ManifestUpdate:
    """A manifest's planned content and the changes that produced it."""

    handle: ManifestHandle
    name: str
    manifest: Manifest
    changes: Tuple[ChangeRecord, ...] = ()

    @property
    def changed(self) -> bool:
        return len(self.changes) > 0


@dataclass(frozen=True)
class RootUpdate:
    """Planned packageManager bump of the root manifest."""

    handle: ManifestHandle
    manifest: Manifest
    update: ToolVersionUpdate


@dataclass(frozen=True)
class MigrationPlan:
    """Everything a run will write, decided against one snapshot."""

    decision: ConsolidationDecision
    workspace_config: Optional[WorkspaceConfig] = None
    manifest_updates: Tuple[ManifestUpdate, ...] = ()
    root_update: Optional[RootUpdate] = None
    manifest_count: int = 0

    @property
    def workspace_found(self) -> bool:
        return self.workspace_config is not None

    @property
    def is_actionable(self) -> bool:
        return self.workspace_found and self.decision.has_selection

    @property
    def changed_manifests(self) -> List[ManifestUpdate]:
        return [update for update in self.manifest_updates if update.changed]


def _guard_root(
    workspace: Workspace,
    updates: List[ManifestUpdate],
    tool: str,
    minimum_version: str,
) -> Optional[RootUpdate]:
    handle = workspace.root_manifest_handle()

    # The root may also be a workspace package; build on its rewritten content
    planned = next((u for u in updates if u.handle == handle), None)
    root = planned.manifest if planned else workspace.read_manifest(handle)
    if root is None:
        return None

    guarded, update = guard_tool_version(root, tool=tool, minimum_version=minimum_version)
    if update is None:
        return None
    return RootUpdate(handle=handle, manifest=guarded, update=update)


def build_plan(
    workspace: Workspace,
    tool: str = DEFAULT_TOOL,
    minimum_version: str = DEFAULT_MINIMUM_VERSION,
) -> MigrationPlan:
    """
    Read the workspace and decide every write of the run.

    Returns a plan with ``workspace_config`` None when the workspace file is
    missing, and with an empty selection when nothing can be consolidated;
    in both cases the plan holds no writes.
    """
    config = workspace.read_workspace_config()
    if config is None:
        return MigrationPlan(decision=ConsolidationDecision())

    handles = workspace.list_manifests(config.packages)
    snapshot = [(handle, workspace.read_manifest(handle)) for handle in handles]
    loaded = [(handle, manifest) for handle, manifest in snapshot if manifest is not None]

    decision = select_consolidation(collect_versions(m for _, m in loaded))
    if not decision.has_selection:
        return MigrationPlan(
            decision=decision, workspace_config=config, manifest_count=len(loaded)
        )

    updates = []
    for handle, manifest in loaded:
        result = rewrite_manifest(manifest, decision.selected)
        updates.append(
            ManifestUpdate(
                handle=handle,
                name=manifest.display_name(handle),
                manifest=result.manifest,
                changes=tuple(result.changes),
            )
        )

    return MigrationPlan(
        decision=decision,
        workspace_config=update_workspace_catalog(config, decision.selected),
        manifest_updates=tuple(updates),
        root_update=_guard_root(workspace, updates, tool, minimum_version),
        manifest_count=len(loaded),
    )


def apply_plan(plan: MigrationPlan, workspace: Workspace) -> None:
    """
    Write the plan: catalog first, then changed manifests, then the root.

    A plan that is not actionable writes nothing.
    """
    if not plan.is_actionable:
        return

    logger = get_workspace_logger()
    workspace.write_workspace_config(plan.workspace_config)
    logger.info("catalog_updated", catalog_size=len(plan.workspace_config.catalog))

    root_written = False
    for update in plan.changed_manifests:
        manifest = update.manifest
        if plan.root_update is not None and update.handle == plan.root_update.handle:
            manifest = plan.root_update.manifest
            root_written = True
        workspace.write_manifest(update.handle, manifest)
        log_manifest_rewrite(str(update.handle), len(update.changes))

    if plan.root_update is not None:
        if not root_written:
            workspace.write_manifest(plan.root_update.handle, plan.root_update.manifest)
        logger.info(
            "package_manager_bumped",
            old_value=plan.root_update.update.old_value,
            new_value=plan.root_update.update.new_value,
        )
