"""
Version aggregation across workspace manifests.

Builds the observation table used to decide which dependencies can move to
the catalog: dependency name to the distinct accepted specifiers, in the
order they were first seen.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from .manifest import DEPENDENCY_SECTIONS, Manifest
from .specifiers import is_consolidatable
from .structured_logging import get_scanner_logger

VersionObservations = Dict[str, List[str]]


def read_dependencies(
    observations: VersionObservations,
    dependencies: Optional[Mapping[str, Any]],
) -> VersionObservations:
    """
    Record the accepted specifiers of one dependency map.

    Args:
        observations: Table to extend in place
        dependencies: Name to specifier mapping, may be None

    Returns:
        VersionObservations: The same table, for chaining
    """
    for name, specifier in (dependencies or {}).items():
        if not is_consolidatable(specifier):
            continue

        seen = observations.setdefault(name, [])
        if specifier not in seen:
            seen.append(specifier)

    return observations


def collect_versions(manifests: Iterable[Optional[Manifest]]) -> VersionObservations:
    """
    Aggregate distinct specifiers per dependency over all manifests.

    Missing manifests (None) contribute nothing. The result depends only on
    the snapshot passed in.
    """
    observations: VersionObservations = {}
    manifest_count = 0

    for manifest in manifests:
        if manifest is None:
            continue
        manifest_count += 1
        for section in DEPENDENCY_SECTIONS:
            read_dependencies(observations, manifest.section(section))

    get_scanner_logger().debug(
        "dependencies_observed",
        manifest_count=manifest_count,
        dependency_count=len(observations),
    )
    return observations
