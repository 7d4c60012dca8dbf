"""
Structured logging configuration for catalog-migrator.

Provides consistent, machine-readable events for each migration phase so
runs can be audited from CI logs.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class MigrationLogger:
    """Structured logger for migration events."""

    def __init__(self, name: str = "catalog_migrator"):
        self.logger = logging.getLogger(name)
        self._setup_logger()
        self.run_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_run_context(
        self,
        run_id: Optional[str] = None,
        workspace_root: Optional[str] = None,
        dry_run: Optional[bool] = None,
    ) -> None:
        """Set run context for logging."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if workspace_root:
            self.run_context["workspace_root"] = workspace_root
        if dry_run is not None:
            self.run_context["dry_run"] = dry_run

    def clear_run_context(self) -> None:
        """Clear run context."""
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level.lower())(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        """Log error level event."""
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_scanner_logger = MigrationLogger("catalog_migrator.scanner")
_workspace_logger = MigrationLogger("catalog_migrator.workspace")
_migration_logger = MigrationLogger("catalog_migrator.migration")

_ALL_LOGGERS = (_scanner_logger, _workspace_logger, _migration_logger)


def get_scanner_logger() -> MigrationLogger:
    """Get version scanning logger."""
    return _scanner_logger


def get_workspace_logger() -> MigrationLogger:
    """Get workspace I/O logger."""
    return _workspace_logger


def get_migration_logger() -> MigrationLogger:
    """Get migration orchestration logger."""
    return _migration_logger


def log_migration_start(run_id: str, workspace_root: str, dry_run: bool) -> None:
    """Log migration start event and set the run context on every logger."""
    set_run_context(run_id=run_id, workspace_root=workspace_root, dry_run=dry_run)
    get_migration_logger().info("migration_started")


def log_migration_complete(
    duration_ms: int,
    selected_count: int,
    conflicting_count: int,
    manifests_changed: int,
) -> None:
    """Log migration completion event."""
    get_migration_logger().info(
        "migration_completed",
        duration_ms=duration_ms,
        selected_count=selected_count,
        conflicting_count=conflicting_count,
        manifests_changed=manifests_changed,
    )
    clear_run_context()


def log_migration_aborted(reason: str, **kwargs) -> None:
    """Log a non-fatal early stop."""
    get_migration_logger().warning("migration_aborted", reason=reason, **kwargs)
    clear_run_context()


def log_manifest_rewrite(manifest_path: str, change_count: int) -> None:
    """Log a manifest that received catalog references."""
    get_workspace_logger().info(
        "manifest_rewritten", manifest_path=manifest_path, change_count=change_count
    )


def set_run_context(
    run_id: Optional[str] = None,
    workspace_root: Optional[str] = None,
    dry_run: Optional[bool] = None,
) -> None:
    """Set global run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(run_id, workspace_root, dry_run)


def clear_run_context() -> None:
    """Clear global run context."""
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)
    formatter = (
        StructuredFormatter()
        if enable_json
        else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        for handler in logger.logger.handlers:
            handler.setFormatter(formatter)
