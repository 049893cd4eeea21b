"""
Error handling for cargo-license-report.

Defines the exceptions the CLI turns into exit codes, and a process-wide
``ErrorHandler`` that records recoverable problems (unreadable manifests,
missing package sources) so they can be counted, logged and observed
without interrupting the report.
"""

import logging
import sys
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


class CargoLicenseError(Exception):
    """Base exception for all user-facing cargo-license-report errors."""


class LockfileNotFoundError(CargoLicenseError, FileNotFoundError):
    """Raised when no Cargo.lock can be located for the project."""


class LockfileParseError(CargoLicenseError, ValueError):
    """Raised when a Cargo.lock exists but cannot be read or parsed."""


class ErrorLevel(Enum):
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


class ErrorCategory(Enum):
    PARSING = "PARSING"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorRecord:
    """A single recoverable problem noticed while building a report."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    location: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    hint: Optional[str] = None

    @property
    def stat_key(self) -> str:
        return f"{self.category.value}_{self.level.name}"

    def log_line(self) -> str:
        parts = [self.message, f"at {self.location}"]
        if self.details:
            parts.append(", ".join(f"{k}={v}" for k, v in self.details.items()))
        if self.exception is not None:
            parts.append(type(self.exception).__name__)
        if self.hint:
            parts.append(f"hint: {self.hint}")
        return " | ".join(parts)


ErrorCallback = Callable[[ErrorRecord], None]


class ErrorHandler:
    """
    Collects error records, logs them on stderr and notifies callbacks.

    Callbacks registered for a category only see records of that category;
    callbacks registered without one see every record.
    """

    def __init__(
        self,
        logger_name: str = "cargo_license_report",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
            self.logger.addHandler(handler)
            self.logger.propagate = False

        self.enable_callbacks = enable_callbacks
        self._callbacks: Dict[Optional[ErrorCategory], List[ErrorCallback]] = {}
        self._counts: Counter = Counter()

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """
        Register error callback.

        Args:
            callback: Called with each matching ``ErrorRecord``
            category: Only deliver records of this category; None for all
        """
        if self.enable_callbacks:
            self._callbacks.setdefault(category, []).append(callback)

    def unregister_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        """Remove one registration of ``callback``; unknown callbacks are ignored."""
        listeners = self._callbacks.get(category, [])
        if callback in listeners:
            listeners.remove(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        location: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ) -> ErrorRecord:
        """Record, log and dispatch one problem."""
        record = ErrorRecord(
            level=level,
            category=category,
            message=message,
            location=location,
            details=details or {},
            exception=exception,
            hint=hint,
        )
        self._counts[record.stat_key] += 1
        self.logger.log(level.value, record.log_line())

        if self.enable_callbacks:
            listeners = self._callbacks.get(category, []) + self._callbacks.get(None, [])
            for callback in listeners:
                try:
                    callback(record)
                except Exception as cb_error:
                    self.logger.error(f"Error in callback {callback!r}: {cb_error}")

        return record

    def warning(self, category: ErrorCategory, message: str, location: str, **kwargs) -> ErrorRecord:
        return self.handle_error(ErrorLevel.WARNING, category, message, location, **kwargs)

    def error(self, category: ErrorCategory, message: str, location: str, **kwargs) -> ErrorRecord:
        return self.handle_error(ErrorLevel.ERROR, category, message, location, **kwargs)

    def get_error_stats(self) -> Dict[str, int]:
        """Counts of handled records keyed by ``CATEGORY_LEVEL``."""
        return dict(self._counts)


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Return the process-wide error handler, creating it on first use."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "cargo_license_report",
) -> ErrorHandler:
    """Replace the process-wide error handler, dropping callbacks and stats."""
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, enable_callbacks)
    return _global_error_handler


def log_parsing_error(
    message: str,
    location: str,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> ErrorRecord:
    """
    Record a lockfile that could not be parsed.

    Only the file name goes into the record details so reports do not leak
    local directory layout.
    """
    details = {}
    if file_path is not None:
        details["file_path"] = Path(file_path).name

    return get_error_handler().error(
        ErrorCategory.PARSING,
        message,
        location,
        details=details,
        exception=exception,
        hint="Regenerate the lockfile with `cargo generate-lockfile`",
    )


def log_missing_manifest(name: str, version: str, source: str, location: str) -> ErrorRecord:
    """Record a locked package whose sources are not unpacked in the Cargo home."""
    return get_error_handler().handle_error(
        ErrorLevel.INFO,
        ErrorCategory.FILESYSTEM,
        f"Manifest not found for {name} {version}; license reported as N/A",
        location,
        details={"package": name, "version": version, "source": source},
        hint="Run `cargo fetch` so package sources are unpacked locally",
    )
