"""
Structured logging configuration for cargo-license-report.

Emits machine-readable JSON lines on stderr so that diagnostic output
never mixes with the license report printed on stdout.
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
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ReportLogger:
    """Structured logger for one stage of the report pipeline."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"cargo_license_report.{name}")
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
        lockfile: Optional[str] = None,
        total_dependencies: Optional[int] = None,
    ) -> None:
        """Set run context attached to every event."""
        self.run_context = {}
        if lockfile:
            self.run_context["lockfile"] = lockfile
        if total_dependencies is not None:
            self.run_context["total_dependencies"] = total_dependencies

    def clear_run_context(self) -> None:
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level)("", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_lockfile_logger = ReportLogger("lockfile")
_resolver_logger = ReportLogger("resolver")
_report_logger = ReportLogger("report")

_ALL_LOGGERS = (_lockfile_logger, _resolver_logger, _report_logger)


def get_lockfile_logger() -> ReportLogger:
    """Get lockfile discovery and parsing logger."""
    return _lockfile_logger


def get_resolver_logger() -> ReportLogger:
    """Get manifest resolution logger."""
    return _resolver_logger


def log_lockfile_parsed(lockfile: str, package_count: int, skipped_local: int) -> None:
    """Log a successfully parsed lockfile."""
    _lockfile_logger.info(
        "lockfile_parsed",
        lockfile=lockfile,
        package_count=package_count,
        skipped_local=skipped_local,
    )


def log_dependencies_resolved(total: int, missing_manifests: int) -> None:
    """Log metadata resolution results, warning when manifests were missing."""
    if missing_manifests:
        _resolver_logger.warning(
            "manifest_not_found",
            total_dependencies=total,
            missing_manifests=missing_manifests,
        )
    else:
        _resolver_logger.info(
            "dependencies_resolved",
            total_dependencies=total,
            missing_manifests=0,
        )


def log_report_rendered(mode: str, dependency_count: int, group_count: int) -> None:
    """Log report rendering summary."""
    _report_logger.debug(
        "report_rendered",
        mode=mode,
        dependency_count=dependency_count,
        group_count=group_count,
    )


def set_run_context(
    lockfile: Optional[str] = None,
    total_dependencies: Optional[int] = None,
) -> None:
    """Set global run context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(lockfile, total_dependencies)


def clear_run_context() -> None:
    """Clear global run context."""
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        formatter = (
            StructuredFormatter()
            if enable_json
            else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(event_type)s")
        )
        for handler in logger.logger.handlers:
            handler.setFormatter(formatter)
