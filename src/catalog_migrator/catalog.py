"""Merge consolidation results into the workspace catalog."""

from typing import Any, Dict, Mapping

from .manifest import WorkspaceConfig


def merge_catalog(
    existing: Mapping[str, Any], selected: Mapping[str, str]
) -> Dict[str, Any]:
    """
    Union of the existing catalog and the selected entries, sorted by name.

    Selected entries replace stale values for the same name. Entries not
    touched by this run keep their original values, whatever their type;
    nothing is removed.

    Args:
        existing: Current catalog mapping
        selected: Dependency name to consolidated specifier

    Returns:
        Dict[str, Any]: New catalog with keys in code-point order
    """
    merged = dict(existing)
    merged.update(selected)
    return {name: merged[name] for name in sorted(merged, key=str)}


def update_workspace_catalog(
    config: WorkspaceConfig, selected: Mapping[str, str]
) -> WorkspaceConfig:
    """Return the workspace config with the merged catalog in place."""
    return config.with_catalog(merge_catalog(config.catalog, selected))
