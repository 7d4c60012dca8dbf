"""
Integration tests for catalog-migrator.
Runs the complete pipeline against workspaces written to a temporary directory.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from catalog_migrator.cli_config import MigrationConfig
from catalog_migrator.error_handling import (
    ErrorCategory,
    InstallError,
    WorkspaceWriteError,
    setup_error_handling,
)
from catalog_migrator.manifest import Manifest, ManifestHandle
from catalog_migrator.migrator import RunStatus, run_migration
from catalog_migrator.plan import apply_plan, build_plan
from catalog_migrator.workspace import FileSystemWorkspace

NO_INSTALL = MigrationConfig(install=False)


class TestEndToEndMigration:
    """Test complete migration workflows."""

    def test_sample_workspace_migration(self, sample_workspace):
        """Shared specifiers move to the catalog; conflicts stay pinned."""
        workspace = FileSystemWorkspace(sample_workspace.root)

        report = run_migration(workspace, NO_INSTALL)

        assert report.status == RunStatus.COMPLETED
        assert report.selected == {
            "lodash": "^4.17.21",
            "typescript": "~5.4.0",
            "fsevents": "2.3.3",
        }
        assert report.conflicting == {"react": ["^18.0.0", "^17.0.0"]}

        ws = sample_workspace.read_workspace()
        assert list(ws["catalog"]) == ["fsevents", "lodash", "typescript", "zod"]
        assert ws["catalog"]["lodash"] == "^4.17.21"
        assert ws["catalog"]["zod"] == "^3.22.0"
        assert ws["packages"] == ["packages/*"]
        assert ws["onlyBuiltDependencies"] == ["esbuild"]

        app_a = sample_workspace.read_json("packages/app-a/package.json")
        assert app_a["dependencies"] == {
            "lodash": "catalog:",
            "react": "^18.0.0",
            "shared-lib": "workspace:*",
        }
        assert app_a["devDependencies"] == {"typescript": "catalog:"}

        app_b = sample_workspace.read_json("packages/app-b/package.json")
        assert app_b["dependencies"] == {"lodash": "catalog:", "react": "^17.0.0"}
        assert app_b["optionalDependencies"] == {"fsevents": "catalog:"}

        root = sample_workspace.read_json("package.json")
        assert root["packageManager"] == "pnpm@9.5.0"
        assert report.package_manager_update.old_value == "pnpm@8.9.0"

    def test_change_logs_per_manifest(self, sample_workspace):
        report = run_migration(FileSystemWorkspace(sample_workspace.root), NO_INSTALL)

        logs = {log.name: log.changes for log in report.manifest_changes}
        assert logs["app-a"] == [
            "dependencies.lodash@^4.17.21 => catalog:",
            "devDependencies.typescript@~5.4.0 => catalog:",
        ]
        assert logs["app-b"] == [
            "dependencies.lodash@^4.17.21 => catalog:",
            "optionalDependencies.fsevents@2.3.3 => catalog:",
        ]
        assert logs["shared-lib"] == ["devDependencies.typescript@~5.4.0 => catalog:"]

    def test_second_run_is_idempotent(self, sample_workspace):
        """A re-run selects nothing and leaves every file as the first run left it."""
        workspace = FileSystemWorkspace(sample_workspace.root)
        run_migration(workspace, NO_INSTALL)
        after_first = sample_workspace.snapshot()

        report = run_migration(workspace, NO_INSTALL)

        assert report.status == RunStatus.NOTHING_SELECTED
        assert report.selected_count == 0
        assert report.manifest_changes == []
        assert sample_workspace.snapshot() == after_first

    def test_install_runs_once_after_writes(self, sample_workspace):
        workspace = FileSystemWorkspace(sample_workspace.root)

        with patch("catalog_migrator.workspace.subprocess.run") as mock_run:
            report = run_migration(workspace, MigrationConfig())

        mock_run.assert_called_once_with(
            ["pnpm", "install"], cwd=sample_workspace.root, check=True
        )
        assert report.installed
        assert sample_workspace.read_workspace()["catalog"]["lodash"] == "^4.17.21"


class TestScenarios:
    """Test the documented consolidation scenarios."""

    def test_shared_lodash_is_consolidated(self, builder):
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})
        builder.package("packages/b", name="b", dependencies={"lodash": "^4.17.21"})

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert builder.read_workspace()["catalog"] == {"lodash": "^4.17.21"}
        assert builder.read_json("packages/a/package.json")["dependencies"] == {
            "lodash": "catalog:"
        }
        assert builder.read_json("packages/b/package.json")["dependencies"] == {
            "lodash": "catalog:"
        }

    def test_react_conflict_changes_nothing(self, builder):
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"react": "^18.0.0"})
        builder.package("packages/b", name="b", dependencies={"react": "^17.0.0"})
        before = builder.snapshot()

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.status == RunStatus.NOTHING_SELECTED
        assert report.conflicting == {"react": ["^18.0.0", "^17.0.0"]}
        assert builder.snapshot() == before

    def test_alias_and_plain_range_conflict(self, builder):
        builder.workspace()
        builder.package(
            "packages/a", name="a", dependencies={"left-pad": "npm:left-pad@^1.0.0"}
        )
        builder.package("packages/b", name="b", dependencies={"left-pad": "^1.0.0"})

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.conflicting == {"left-pad": ["npm:left-pad@^1.0.0", "^1.0.0"]}
        assert report.selected == {}

    def test_conflicting_dependency_untouched_alongside_selection(self, builder):
        builder.workspace()
        builder.package(
            "packages/a", name="a", dependencies={"react": "^18.0.0", "zod": "^3.22.0"}
        )
        builder.package(
            "packages/b", name="b", dependencies={"react": "^17.0.0", "zod": "^3.22.0"}
        )

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert "react" not in builder.read_workspace()["catalog"]
        assert builder.read_json("packages/a/package.json")["dependencies"]["react"] == "^18.0.0"
        assert builder.read_json("packages/b/package.json")["dependencies"]["react"] == "^17.0.0"

    def test_new_pinned_package_joins_existing_catalog_entry(self, builder):
        """After a first migration, a newly added pin is consolidated on its own."""
        builder.workspace(catalog={"lodash": "^4.17.21"})
        builder.package("packages/a", name="a", dependencies={"lodash": "catalog:"})
        builder.package("packages/c", name="c", dependencies={"lodash": "^4.17.21"})

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.selected == {"lodash": "^4.17.21"}
        assert [log.name for log in report.manifest_changes] == ["c"]
        assert builder.read_json("packages/c/package.json")["dependencies"] == {
            "lodash": "catalog:"
        }

    def test_excluded_specifier_of_selected_name_is_rewritten(self, builder):
        """A tag or workspace link of a catalogued name moves to the catalog as well."""
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"foo": "^1.0.0"})
        builder.package("packages/b", name="b", dependencies={"foo": "latest"})
        builder.package("packages/c", name="c", devDependencies={"foo": "workspace:*"})

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.selected == {"foo": "^1.0.0"}
        assert builder.read_workspace()["catalog"] == {"foo": "^1.0.0"}
        for relative in ("packages/a", "packages/b"):
            manifest = builder.read_json(f"{relative}/package.json")
            assert manifest["dependencies"] == {"foo": "catalog:"}
        assert builder.read_json("packages/c/package.json")["devDependencies"] == {
            "foo": "catalog:"
        }
        logs = {log.name: log.changes for log in report.manifest_changes}
        assert logs["b"] == ["dependencies.foo@latest => catalog:"]
        assert logs["c"] == ["devDependencies.foo@workspace:* => catalog:"]

    def test_loose_range_conflicts_with_strict_range(self, builder):
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"semver": ">= 7.5.0"})
        builder.package("packages/b", name="b", dependencies={"semver": ">=7.5.0"})

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.status == RunStatus.NOTHING_SELECTED
        assert report.conflicting == {"semver": [">= 7.5.0", ">=7.5.0"]}

    def test_non_string_catalog_entries_survive(self, builder):
        builder.workspace(catalog={"legacy": None, "zod": "^3.22.0"})
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert builder.read_workspace()["catalog"] == {
            "legacy": None,
            "lodash": "^4.17.21",
            "zod": "^3.22.0",
        }

    def test_newer_package_manager_is_kept(self, builder):
        builder.workspace()
        builder.root_package(name="root", packageManager="pnpm@9.6.1")
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.package_manager_update is None
        assert builder.read_json("package.json")["packageManager"] == "pnpm@9.6.1"


class TestAbortsAndErrors:
    """Test non-fatal aborts and fatal failures."""

    def test_missing_workspace_file_aborts(self, builder):
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})
        before = builder.snapshot()

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.status == RunStatus.NO_WORKSPACE
        assert report.aborted
        assert builder.snapshot() == before

    def test_nothing_selected_skips_install(self, builder):
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"shared": "workspace:*"})

        with patch("catalog_migrator.workspace.subprocess.run") as mock_run:
            report = run_migration(FileSystemWorkspace(builder.root), MigrationConfig())

        assert report.status == RunStatus.NOTHING_SELECTED
        mock_run.assert_not_called()

    def test_unreadable_manifest_is_skipped(self, builder):
        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})
        broken = builder.root / "packages" / "broken"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("{ not json")

        report = run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert report.selected == {"lodash": "^4.17.21"}
        assert report.manifest_count == 1
        assert (broken / "package.json").read_text() == "{ not json"

    def test_install_failure_propagates_after_writes(self, sample_workspace):
        workspace = FileSystemWorkspace(sample_workspace.root)
        failure = subprocess.CalledProcessError(1, ["pnpm", "install"])

        with patch("catalog_migrator.workspace.subprocess.run", side_effect=failure):
            with pytest.raises(InstallError) as exc_info:
                run_migration(workspace, MigrationConfig())

        assert exc_info.value.returncode == 1
        assert sample_workspace.read_workspace()["catalog"]["lodash"] == "^4.17.21"

    def test_missing_install_command(self, sample_workspace):
        workspace = FileSystemWorkspace(
            sample_workspace.root, install_command=["definitely-not-pnpm", "install"]
        )

        with pytest.raises(InstallError):
            run_migration(workspace, MigrationConfig())


class TestDryRunAndPlan:
    """Test the staged plan and dry runs."""

    def test_dry_run_writes_nothing(self, sample_workspace):
        before = sample_workspace.snapshot()

        with patch("catalog_migrator.workspace.subprocess.run") as mock_run:
            report = run_migration(
                FileSystemWorkspace(sample_workspace.root), MigrationConfig(dry_run=True)
            )

        assert report.dry_run
        assert report.selected_count == 3
        assert len(report.manifest_changes) == 3
        assert report.package_manager_update is not None
        assert sample_workspace.snapshot() == before
        mock_run.assert_not_called()

    def test_plan_then_apply_matches_run(self, sample_workspace):
        workspace = FileSystemWorkspace(sample_workspace.root)

        plan = build_plan(workspace)
        assert plan.is_actionable
        assert plan.workspace_config.catalog["typescript"] == "~5.4.0"
        assert len(plan.changed_manifests) == 3

        apply_plan(plan, workspace)

        assert sample_workspace.read_json("package.json")["packageManager"] == "pnpm@9.5.0"

    def test_root_listed_as_package_gets_both_updates(self, builder):
        """A root manifest inside the package patterns is written once with both edits."""
        builder.workspace(packages=[".", "packages/*"])
        builder.root_package(
            name="root", packageManager="pnpm@8.15.0", devDependencies={"eslint": "^8.57.0"}
        )
        builder.package("packages/a", name="a", devDependencies={"eslint": "^8.57.0"})

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        root = builder.read_json("package.json")
        assert root["packageManager"] == "pnpm@9.5.0"
        assert root["devDependencies"] == {"eslint": "catalog:"}


class TestWorkspaceDiscovery:
    """Test manifest discovery from package patterns."""

    def test_node_modules_are_ignored(self, builder):
        builder.package("packages/a", name="a")
        builder.package("packages/a/node_modules/dep", name="dep")
        builder.package("node_modules/other", name="other")

        handles = FileSystemWorkspace(builder.root).list_manifests(
            ["packages/**", "node_modules/*"]
        )

        assert handles == [ManifestHandle(builder.root / "packages/a/package.json")]

    def test_negated_patterns_exclude(self, builder):
        builder.package("packages/a", name="a")
        builder.package("packages/legacy", name="legacy")

        handles = FileSystemWorkspace(builder.root).list_manifests(
            ["packages/*", "!packages/legacy"]
        )

        assert [h.path.parent.name for h in handles] == ["a"]

    def test_directories_without_manifest_are_skipped(self, builder):
        builder.package("apps/web", name="web")
        (builder.root / "apps" / "docs").mkdir(parents=True)

        handles = FileSystemWorkspace(builder.root).list_manifests(["apps/*"])

        assert [h.path.parent.name for h in handles] == ["web"]

    def test_written_manifest_format(self, builder):
        builder.workspace()
        builder.package(
            "packages/a",
            name="a",
            description="Café",
            dependencies={"lodash": "^4.17.21"},
        )

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        content = (builder.root / "packages/a/package.json").read_text(encoding="utf-8")
        assert content.endswith("}\n")
        assert '  "name": "a"' in content
        assert "Café" in content
        assert json.loads(content)["dependencies"] == {"lodash": "catalog:"}


class TestErrorHandling:
    """Test error reporting through the central handler."""

    def test_parse_failures_reach_callbacks(self, builder):
        handler = setup_error_handling()
        seen = []
        handler.register_callback(seen.append, ErrorCategory.PARSING)

        builder.workspace()
        builder.package("packages/a", name="a", dependencies={"lodash": "^4.17.21"})
        broken = builder.root / "packages" / "broken"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("[1, 2")

        run_migration(FileSystemWorkspace(builder.root), NO_INSTALL)

        assert len(seen) == 1
        assert seen[0].details["file_path"].endswith("package.json")
        assert handler.get_error_stats() == {"PARSING_WARNING": 1}

    def test_install_failure_is_counted(self, sample_workspace):
        handler = setup_error_handling()
        failure = subprocess.CalledProcessError(2, ["pnpm", "install"])

        with patch("catalog_migrator.workspace.subprocess.run", side_effect=failure):
            with pytest.raises(InstallError):
                run_migration(FileSystemWorkspace(sample_workspace.root), MigrationConfig())

        assert handler.get_error_stats() == {"INSTALL_ERROR": 1}

    def test_write_failure_raises_workspace_write_error(self, builder):
        handler = setup_error_handling()
        workspace = FileSystemWorkspace(builder.root)
        handle = ManifestHandle(builder.root / "missing" / "package.json")

        with pytest.raises(WorkspaceWriteError) as exc_info:
            workspace.write_manifest(handle, Manifest(document={"name": "a"}))

        assert exc_info.value.path == handle.path
        assert handler.get_error_stats() == {"FILESYSTEM_ERROR": 1}

    def test_global_callback_survives_failing_callback(self):
        handler = setup_error_handling()
        seen = []

        def broken_callback(context):
            raise RuntimeError("callback failed")

        handler.register_callback(broken_callback, ErrorCategory.PARSING)
        handler.register_callback(seen.append)

        context = handler.warning(
            ErrorCategory.PARSING, "Could not read manifest", "workspace", "read_manifest"
        )

        assert seen == [context]
        assert "workspace.read_manifest" in context.render()
