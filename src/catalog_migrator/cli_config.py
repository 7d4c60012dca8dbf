"""
Configuration management for catalog-migrator.

Settings are layered: dataclass defaults, then a config file, then
environment variables. Command-line flags override the result in main.py.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import semantic_version
import yaml
from rich.console import Console

from .version_guard import DEFAULT_MINIMUM_VERSION, DEFAULT_TOOL

console = Console(stderr=True)

ENV_PREFIX = "CATALOG_MIGRATOR_"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class MigrationConfig:
    """Behaviour of a migration run."""

    tool_name: str = DEFAULT_TOOL
    minimum_tool_version: str = DEFAULT_MINIMUM_VERSION
    install: bool = True
    install_command: List[str] = field(default_factory=lambda: ["pnpm", "install"])
    dry_run: bool = False


@dataclass
class WorkspaceSettings:
    """Where workspace files live and how they are written."""

    workspace_file: str = "pnpm-workspace.yaml"
    manifest_file: str = "package.json"
    ignore_patterns: List[str] = field(default_factory=lambda: ["**/node_modules/**"])
    json_indent: int = 2


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    migration: MigrationConfig = field(default_factory=MigrationConfig)
    workspace: WorkspaceSettings = field(default_factory=WorkspaceSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []
    migration = config.migration
    workspace = config.workspace

    if not isinstance(migration.tool_name, str) or not migration.tool_name:
        errors.append("migration.tool_name must be a non-empty string")
    try:
        semantic_version.Version(str(migration.minimum_tool_version))
    except ValueError:
        errors.append(
            "migration.minimum_tool_version must be a full semantic version "
            f"(got: {migration.minimum_tool_version!r})"
        )
    if not _is_string_list(migration.install_command) or not migration.install_command:
        errors.append("migration.install_command must be a non-empty list of strings")
    for flag in ("install", "dry_run"):
        if not isinstance(getattr(migration, flag), bool):
            errors.append(f"migration.{flag} must be true or false")

    for name in ("workspace_file", "manifest_file"):
        value = getattr(workspace, name)
        if not isinstance(value, str) or not value:
            errors.append(f"workspace.{name} must be a non-empty string")
    if not _is_string_list(workspace.ignore_patterns):
        errors.append("workspace.ignore_patterns must be a list of strings")
    if (
        not isinstance(workspace.json_indent, int)
        or isinstance(workspace.json_indent, bool)
        or workspace.json_indent < 0
    ):
        errors.append("workspace.json_indent must be a non-negative integer")

    if (
        not isinstance(config.logging.log_level, str)
        or config.logging.log_level.upper() not in VALID_LOG_LEVELS
    ):
        errors.append(
            f"logging.log_level must be one of {', '.join(VALID_LOG_LEVELS)}"
        )
    if not isinstance(config.logging.enable_json, bool):
        errors.append("logging.enable_json must be true or false")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or YAML file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                return None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    return data if isinstance(data, dict) else None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".catalog-migrator.json",
        Path.cwd() / ".catalog-migrator.yaml",
        Path.cwd() / ".catalog-migrator.yml",
        Path.home() / ".config" / "catalog-migrator" / "config.json",
        Path.home() / ".config" / "catalog-migrator" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    if tool_name := os.environ.get(f"{ENV_PREFIX}TOOL_NAME"):
        config.migration.tool_name = tool_name
    if minimum := os.environ.get(f"{ENV_PREFIX}MIN_TOOL_VERSION"):
        config.migration.minimum_tool_version = minimum

    if get_env_bool(f"{ENV_PREFIX}SKIP_INSTALL"):
        config.migration.install = False
    config.migration.dry_run = get_env_bool(
        f"{ENV_PREFIX}DRY_RUN", config.migration.dry_run
    )

    if log_level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def build_config(file_config: Optional[Dict[str, Any]] = None) -> ComprehensiveConfig:
    """Build a configuration from optional file data plus the environment."""
    config = ComprehensiveConfig()

    if file_config:
        if isinstance(file_config.get("migration"), dict):
            apply_config_section(config.migration, file_config["migration"], "migration")
        if isinstance(file_config.get("workspace"), dict):
            apply_config_section(config.workspace, file_config["workspace"], "workspace")
        if isinstance(file_config.get("logging"), dict):
            apply_config_section(config.logging, file_config["logging"], "logging")

    load_environment_overrides(config)
    return config


def load_config() -> ComprehensiveConfig:
    """Load comprehensive configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    file_config = None
    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)

    config = build_config(file_config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = _replace_invalid_sections(config, validation_errors)

    _global_config = config
    return config


def _replace_invalid_sections(
    config: ComprehensiveConfig, errors: List[str]
) -> ComprehensiveConfig:
    """Reset every section named in a validation error to its defaults."""
    defaults = ComprehensiveConfig()
    for section in ("migration", "workspace", "logging"):
        if any(error.startswith(f"{section}.") for error in errors):
            setattr(config, section, getattr(defaults, section))
    return config


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file."""
    return json.dumps(ComprehensiveConfig().to_dict(), indent=2)
