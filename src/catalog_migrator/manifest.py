"""
Workspace data model for catalog migration.

Manifests and the workspace configuration are immutable values wrapping the
decoded documents, so unrelated fields round-trip untouched when written back.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

CATALOG_REFERENCE = "catalog:"
WORKSPACE_WILDCARD = "workspace:*"
ALIAS_PREFIX = "npm:"

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"
OPTIONAL_DEPENDENCIES = "optionalDependencies"

# Scan and rewrite order
DEPENDENCY_SECTIONS: Tuple[str, ...] = (
    DEPENDENCIES,
    DEV_DEPENDENCIES,
    OPTIONAL_DEPENDENCIES,
)


@dataclass(frozen=True)
class ManifestHandle:
    """Identifies a manifest by its file location."""

    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class Manifest:
    """A decoded package.json document."""

    document: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> Optional[str]:
        name = self.document.get("name")
        return name if isinstance(name, str) else None

    @property
    def package_manager(self) -> Optional[str]:
        value = self.document.get("packageManager")
        return value if isinstance(value, str) else None

    def section(self, section: str) -> Dict[str, Any]:
        """Return a copy of a dependency section, empty when absent or malformed."""
        deps = self.document.get(section)
        if not isinstance(deps, dict):
            return {}
        return dict(deps)

    @property
    def dependencies(self) -> Dict[str, Any]:
        return self.section(DEPENDENCIES)

    @property
    def dev_dependencies(self) -> Dict[str, Any]:
        return self.section(DEV_DEPENDENCIES)

    @property
    def optional_dependencies(self) -> Dict[str, Any]:
        return self.section(OPTIONAL_DEPENDENCIES)

    def with_section(self, section: str, deps: Dict[str, Any]) -> "Manifest":
        """Return a new manifest with one dependency section replaced."""
        document = copy.deepcopy(self.document)
        document[section] = dict(deps)
        return Manifest(document=document)

    def with_package_manager(self, value: str) -> "Manifest":
        """Return a new manifest with the packageManager field replaced."""
        document = copy.deepcopy(self.document)
        document["packageManager"] = value
        return Manifest(document=document)

    def display_name(self, handle: Optional[ManifestHandle] = None) -> str:
        if self.name:
            return self.name
        if handle is not None:
            return str(handle.path.parent.name or handle.path)
        return "<unnamed>"


@dataclass(frozen=True)
class WorkspaceConfig:
    """The workspace document: package patterns, catalog and any other fields."""

    document: Dict[str, Any] = field(default_factory=dict)

    @property
    def packages(self) -> List[str]:
        patterns = self.document.get("packages") or []
        if not isinstance(patterns, list):
            return []
        return [p for p in patterns if isinstance(p, str)]

    @property
    def catalog(self) -> Dict[str, Any]:
        """Catalog entries exactly as stored, including non-string values."""
        catalog = self.document.get("catalog") or {}
        if not isinstance(catalog, dict):
            return {}
        return dict(catalog)

    def with_catalog(self, catalog: Dict[str, Any]) -> "WorkspaceConfig":
        """Return a new config whose catalog is the given mapping sorted by name."""
        document = copy.deepcopy(self.document)
        document["catalog"] = {name: catalog[name] for name in sorted(catalog, key=str)}
        return WorkspaceConfig(document=document)
