"""Minimum package-manager version guard for the root manifest."""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

import semantic_version

from .manifest import Manifest

DEFAULT_TOOL = "pnpm"
DEFAULT_MINIMUM_VERSION = "9.5.0"

_PACKAGE_MANAGER_PATTERN = re.compile(r"^(?P<tool>[^@\s]+)@(?P<version>\S+)$")


@dataclass(frozen=True)
class ToolVersionUpdate:
    """A packageManager value that was raised to the minimum version."""

    old_value: str
    new_value: str


def parse_package_manager(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split ``<tool>@<version>`` into its parts, None when it does not match."""
    if not value:
        return None
    match = _PACKAGE_MANAGER_PATTERN.match(value.strip())
    if not match:
        return None
    return match.group("tool"), match.group("version")


def needs_upgrade(version: str, minimum: str) -> bool:
    """True only when both versions parse and ``version`` is strictly lower."""
    try:
        current = semantic_version.Version(version)
        threshold = semantic_version.Version(minimum)
    except ValueError:
        return False
    # Build metadata (e.g. +sha512.<hash>) does not affect precedence
    return current.truncate("prerelease") < threshold


def guard_tool_version(
    manifest: Manifest,
    tool: str = DEFAULT_TOOL,
    minimum_version: str = DEFAULT_MINIMUM_VERSION,
) -> Tuple[Manifest, Optional[ToolVersionUpdate]]:
    """
    Raise the pinned tool version to the minimum when it is older.

    Absent, malformed or other-tool values and versions at or above the
    minimum leave the manifest unchanged; this never downgrades.

    Returns:
        Tuple of (manifest, update or None)
    """
    current = manifest.package_manager
    parsed = parse_package_manager(current)
    if parsed is None:
        return manifest, None

    current_tool, version = parsed
    if current_tool != tool or not needs_upgrade(version, minimum_version):
        return manifest, None

    new_value = f"{tool}@{minimum_version}"
    return manifest.with_package_manager(new_value), ToolVersionUpdate(
        old_value=current, new_value=new_value
    )
