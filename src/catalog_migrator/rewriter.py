"""
Manifest rewriting for catalog migration.

Turns consolidated specifiers into catalog references and records what was
changed, without touching the manifest passed in.
"""

from dataclasses import dataclass, field
from typing import List, Mapping

from .manifest import CATALOG_REFERENCE, DEPENDENCY_SECTIONS, Manifest


@dataclass(frozen=True)
class ChangeRecord:
    """A single specifier replaced by a catalog reference."""

    section: str
    name: str
    old_specifier: str

    def describe(self) -> str:
        return f"{self.section}.{self.name}@{self.old_specifier} => {CATALOG_REFERENCE}"


@dataclass(frozen=True)
class RewriteResult:
    """The rewritten manifest together with its change log."""

    manifest: Manifest
    changes: List[ChangeRecord] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return len(self.changes) > 0


def rewrite_manifest(manifest: Manifest, selected: Mapping[str, str]) -> RewriteResult:
    """
    Replace consolidated specifiers with the catalog reference.

    Every entry of a selected name is replaced, whatever its current
    specifier, so no package keeps a private pin of a catalogued dependency.
    Entries already pointing at the catalog are not recorded again. Sections
    are visited in declaration order and dependency order inside each
    section is preserved.

    Args:
        manifest: Manifest snapshot
        selected: Dependency name to consolidated specifier

    Returns:
        RewriteResult: New manifest plus one ChangeRecord per replacement
    """
    result = manifest
    changes: List[ChangeRecord] = []

    for section in DEPENDENCY_SECTIONS:
        deps = manifest.section(section)
        if not deps:
            continue

        section_changed = False
        for name, specifier in deps.items():
            if name not in selected or specifier == CATALOG_REFERENCE:
                continue
            changes.append(ChangeRecord(section=section, name=name, old_specifier=specifier))
            deps[name] = CATALOG_REFERENCE
            section_changed = True

        if section_changed:
            result = result.with_section(section, deps)

    return RewriteResult(manifest=result, changes=changes)
