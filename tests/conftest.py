"""
Shared fixtures for catalog-migrator tests.
Builds throwaway pnpm workspaces on disk.
"""

import json
from pathlib import Path

import pytest
import yaml

from catalog_migrator.cli_config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep user config files and environment out of every test."""
    for key in (
        "CATALOG_MIGRATOR_TOOL_NAME",
        "CATALOG_MIGRATOR_MIN_TOOL_VERSION",
        "CATALOG_MIGRATOR_SKIP_INSTALL",
        "CATALOG_MIGRATOR_DRY_RUN",
        "CATALOG_MIGRATOR_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_config()
    yield
    reset_config()


class WorkspaceBuilder:
    """Writes a workspace file and package manifests under a root directory."""

    def __init__(self, root: Path):
        self.root = root

    def workspace(self, packages=None, catalog=None, **extra) -> Path:
        document = {"packages": packages if packages is not None else ["packages/*"]}
        if catalog is not None:
            document["catalog"] = catalog
        document.update(extra)
        path = self.root / "pnpm-workspace.yaml"
        path.write_text(yaml.safe_dump(document, sort_keys=False))
        return path

    def package(self, relative: str, **document) -> Path:
        directory = self.root / relative
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        path.write_text(json.dumps(document, indent=2) + "\n")
        return path

    def root_package(self, **document) -> Path:
        path = self.root / "package.json"
        path.write_text(json.dumps(document, indent=2) + "\n")
        return path

    def read_json(self, relative: str) -> dict:
        return json.loads((self.root / relative).read_text())

    def read_workspace(self) -> dict:
        return yaml.safe_load((self.root / "pnpm-workspace.yaml").read_text())

    def snapshot(self) -> dict:
        """Contents of every file under the root, keyed by relative path."""
        return {
            path.relative_to(self.root).as_posix(): path.read_text()
            for path in sorted(self.root.rglob("*"))
            if path.is_file()
        }


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def builder(workspace_root):
    return WorkspaceBuilder(workspace_root)


@pytest.fixture
def sample_workspace(builder):
    """Two apps sharing lodash, disagreeing on react, linked to a local lib."""
    builder.workspace(catalog={"zod": "^3.22.0"}, onlyBuiltDependencies=["esbuild"])
    builder.root_package(name="monorepo", private=True, packageManager="pnpm@8.9.0")
    builder.package(
        "packages/app-a",
        name="app-a",
        version="1.0.0",
        dependencies={
            "lodash": "^4.17.21",
            "react": "^18.0.0",
            "shared-lib": "workspace:*",
        },
        devDependencies={"typescript": "~5.4.0"},
    )
    builder.package(
        "packages/app-b",
        name="app-b",
        version="1.0.0",
        dependencies={"lodash": "^4.17.21", "react": "^17.0.0"},
        optionalDependencies={"fsevents": "2.3.3"},
    )
    builder.package(
        "packages/shared-lib",
        name="shared-lib",
        version="0.1.0",
        devDependencies={"typescript": "~5.4.0"},
    )
    return builder
