"""
Workspace access for catalog migration.

The migration core only talks to the ``Workspace`` interface; the file-system
implementation below knows about pnpm-workspace.yaml, package.json and the
install command.
"""

import fnmatch
import json
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import yaml

from .cli_config import WorkspaceSettings
from .error_handling import (
    InstallError,
    WorkspaceWriteError,
    log_install_error,
    log_parsing_error,
    log_write_error,
)
from .manifest import Manifest, ManifestHandle, WorkspaceConfig
from .structured_logging import get_workspace_logger


class Workspace(ABC):
    """Capabilities the migration needs from a workspace."""

    @abstractmethod
    def list_manifests(self, patterns: Sequence[str]) -> List[ManifestHandle]:
        """Return handles for every package manifest matched by the patterns."""

    @abstractmethod
    def read_workspace_config(self) -> Optional[WorkspaceConfig]:
        """Return the workspace configuration, or None when absent."""

    @abstractmethod
    def read_manifest(self, handle: ManifestHandle) -> Optional[Manifest]:
        """Return a manifest, or None when it is missing or unreadable."""

    @abstractmethod
    def write_manifest(self, handle: ManifestHandle, manifest: Manifest) -> None:
        """Persist a manifest."""

    @abstractmethod
    def write_workspace_config(self, config: WorkspaceConfig) -> None:
        """Persist the workspace configuration."""

    @abstractmethod
    def run_install(self) -> None:
        """Run the package manager's install step once, blocking."""

    @abstractmethod
    def root_manifest_handle(self) -> ManifestHandle:
        """Handle of the workspace root manifest."""

    @property
    def description(self) -> str:
        return type(self).__name__


def _matches(relative: str, pattern: str) -> bool:
    """Glob-style match that also lets ``**/x/**`` match at the top level."""
    pattern = pattern.strip("/")
    return fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(
        f"/{relative}/", pattern
    )


class FileSystemWorkspace(Workspace):
    """A pnpm workspace rooted at a directory on disk."""

    def __init__(
        self,
        root: Path,
        settings: Optional[WorkspaceSettings] = None,
        install_command: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the workspace.

        Args:
            root: Directory holding the workspace file and root manifest
            settings: File names, ignore patterns and output indentation
            install_command: Command run by ``run_install``
        """
        self.root = Path(root)
        self.settings = settings or WorkspaceSettings()
        self.install_command = list(install_command or ["pnpm", "install"])
        self.logger = get_workspace_logger()

    @property
    def description(self) -> str:
        return str(self.root)

    @property
    def workspace_file(self) -> Path:
        return self.root / self.settings.workspace_file

    def root_manifest_handle(self) -> ManifestHandle:
        return ManifestHandle(self.root / self.settings.manifest_file)

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def _is_ignored(self, relative: str, patterns: Iterable[str]) -> bool:
        return any(_matches(relative, pattern) for pattern in patterns)

    def _expand(self, pattern: str) -> List[Path]:
        pattern = pattern.strip()
        while pattern.startswith("./"):
            pattern = pattern[2:]
        pattern = pattern.rstrip("/")
        if pattern in ("", "."):
            return [self.root]
        return [path for path in self.root.glob(pattern) if path.is_dir()]

    def list_manifests(self, patterns: Sequence[str]) -> List[ManifestHandle]:
        """
        Expand package patterns into manifest handles.

        ``!``-prefixed patterns exclude directories and anything matching the
        configured ignore patterns (node_modules by default) is skipped.
        Handles are de-duplicated and sorted by path.
        """
        includes = [p for p in patterns if p and not p.startswith("!")]
        excludes = [p[1:] for p in patterns if p and p.startswith("!")]
        ignored = list(self.settings.ignore_patterns) + excludes

        found = set()
        for pattern in includes:
            for directory in self._expand(pattern):
                relative = self._relative(directory)
                if relative != "." and self._is_ignored(relative, ignored):
                    continue
                manifest_path = directory / self.settings.manifest_file
                if manifest_path.is_file():
                    found.add(manifest_path)

        handles = [ManifestHandle(path) for path in sorted(found)]
        self.logger.debug(
            "manifests_listed", pattern_count=len(patterns), manifest_count=len(handles)
        )
        return handles

    def read_workspace_config(self) -> Optional[WorkspaceConfig]:
        path = self.workspace_file
        if not path.is_file():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            log_parsing_error(
                f"Could not read workspace file: {e}",
                "workspace",
                "read_workspace_config",
                file_path=path,
                exception=e,
            )
            return None

        if not isinstance(data, dict):
            return None
        return WorkspaceConfig(document=data)

    def read_manifest(self, handle: ManifestHandle) -> Optional[Manifest]:
        if not handle.path.is_file():
            self.logger.debug("manifest_skipped", manifest_path=str(handle), reason="missing")
            return None

        try:
            with open(handle.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            log_parsing_error(
                f"Could not read manifest: {e}",
                "workspace",
                "read_manifest",
                file_path=handle.path,
                exception=e,
            )
            return None

        if not isinstance(data, dict):
            log_parsing_error(
                "Manifest must contain a JSON object",
                "workspace",
                "read_manifest",
                file_path=handle.path,
            )
            return None
        return Manifest(document=data)

    def write_manifest(self, handle: ManifestHandle, manifest: Manifest) -> None:
        content = json.dumps(
            manifest.document, indent=self.settings.json_indent, ensure_ascii=False
        )
        self._write_text(handle.path, content + "\n")

    def write_workspace_config(self, config: WorkspaceConfig) -> None:
        content = yaml.safe_dump(
            config.document,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        self._write_text(self.workspace_file, content)

    def _write_text(self, path: Path, content: str) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            log_write_error(path, e)
            raise WorkspaceWriteError(f"Failed to write {path}: {e}", path=path) from e

    def run_install(self) -> None:
        command = self.install_command
        self.logger.info("install_started", command=" ".join(command))
        try:
            subprocess.run(command, cwd=self.root, check=True)
        except FileNotFoundError as e:
            log_install_error("Install command not found", command, exception=e)
            raise InstallError(f"Install command not found: {command[0]}") from e
        except subprocess.CalledProcessError as e:
            log_install_error(
                "Install command failed", command, returncode=e.returncode, exception=e
            )
            raise InstallError(
                f"'{' '.join(command)}' exited with status {e.returncode}",
                returncode=e.returncode,
            ) from e
