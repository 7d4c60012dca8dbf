"""
Error handling for catalog-migrator.

Defines the exception types raised to callers of the migration pipeline and a
central handler that logs recoverable problems (skipped files) and fatal ones
(failed writes, failed install) with structured context.
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence


class CatalogMigratorError(Exception):
    """Base class for errors raised by the migration pipeline."""


class InstallError(CatalogMigratorError):
    """The package manager's install step failed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class WorkspaceWriteError(CatalogMigratorError):
    """A workspace or manifest file could not be written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ErrorLevel(Enum):
    """Severity of a handled error."""

    WARNING = "WARNING"  # The run continues without the affected file
    ERROR = "ERROR"  # The run stops


class ErrorCategory(Enum):
    """What part of the workspace the error concerns."""

    PARSING = "PARSING"
    FILESYSTEM = "FILESYSTEM"
    INSTALL = "INSTALL"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)

    def render(self) -> str:
        """Single-line form used in log output."""
        data: Dict[str, Any] = {
            "category": self.category.value,
            "location": f"{self.module}.{self.function}",
            **self.details,
        }
        if self.exception is not None:
            data["exception"] = type(self.exception).__name__
        if self.suggestions:
            data["suggestions"] = self.suggestions
        return f"{self.message} | {data}"


ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler.

    Logs every context, keeps per-category counts, and notifies callbacks
    registered for a category (or for all categories).
    """

    def __init__(self, logger_name: str = "catalog_migrator", log_level: int = logging.WARNING):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

        self.callbacks: Dict[Optional[ErrorCategory], List[ErrorCallback]] = {}
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """Call ``callback`` for errors of ``category``, or for all errors when None."""
        self.callbacks.setdefault(category, []).append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        if level == ErrorLevel.ERROR:
            self.logger.error(context.render())
        else:
            self.logger.warning(context.render())

        for callback in self.callbacks.get(category, []) + self.callbacks.get(None, []):
            try:
                callback(context)
            except Exception as cb_error:
                # A failing callback must not mask the original error
                self.logger.error(f"Error in callback: {cb_error}")

        return context

    def warning(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        return self.handle_error(ErrorLevel.WARNING, category, message, module, function, **kwargs)

    def error(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        return self.handle_error(ErrorLevel.ERROR, category, message, module, function, **kwargs)

    def get_error_stats(self) -> Dict[str, int]:
        """Counts keyed by ``<CATEGORY>_<LEVEL>``."""
        return self.error_stats.copy()


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING, logger_name: str = "catalog_migrator"
) -> ErrorHandler:
    """Replace the global error handler with a fresh one."""
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level)
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    file_path: Optional[Path] = None,
    exception: Optional[Exception] = None,
):
    """
    Log a workspace file that could not be decoded and was skipped.

    Args:
        message: Error message
        module: Module name
        function: Function name
        file_path: File being parsed
        exception: Optional exception
    """
    details = {}
    if file_path is not None:
        details["file_path"] = str(file_path)

    get_error_handler().warning(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=["Fix the file and re-run; it was skipped for this run"],
    )


def log_write_error(path: Path, exception: Exception):
    """Log a workspace file that could not be written."""
    get_error_handler().error(
        ErrorCategory.FILESYSTEM,
        f"Failed to write {path}",
        "workspace",
        "write",
        details={"file_path": str(path)},
        exception=exception,
        suggestions=["Check file permissions and free disk space"],
    )


def log_install_error(
    message: str,
    command: Sequence[str],
    returncode: Optional[int] = None,
    exception: Optional[Exception] = None,
):
    """Log a failed install step; catalog and manifests are already written."""
    details: Dict[str, Any] = {"command": " ".join(command)}
    if returncode is not None:
        details["returncode"] = returncode

    get_error_handler().error(
        ErrorCategory.INSTALL,
        message,
        "workspace",
        "run_install",
        details=details,
        exception=exception,
        suggestions=["Re-run the install alone; re-running the migration makes no further edits"],
    )
