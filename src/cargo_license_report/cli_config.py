"""
Configuration management for cargo-license-report.

Settings come from defaults, an optional JSON config file and environment
variables, in that order; command-line flags are applied last by the CLI.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console

console = Console(stderr=True)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_cargo_home() -> str:
    cargo_home = os.environ.get("CARGO_HOME")
    if cargo_home:
        return cargo_home
    return str(Path.home() / ".cargo")


@dataclass(frozen=True)
class DisplayConfig:
    """Read-only display options shared by both report layouts."""

    display_authors: bool = False
    enable_color: bool = True


@dataclass
class ReportConfig:
    """Report defaults that command-line flags may switch on."""

    display_authors: bool = False
    enable_color: bool = True
    do_not_bundle: bool = False


@dataclass
class ResolverConfig:
    """Lockfile discovery and manifest lookup configuration."""

    cargo_home: str = field(default_factory=_default_cargo_home)
    lockfile_name: str = "Cargo.lock"
    search_parents: bool = True

    @property
    def registry_src_dir(self) -> Path:
        return Path(self.cargo_home).expanduser() / "registry" / "src"

    @property
    def git_checkouts_dir(self) -> Path:
        return Path(self.cargo_home).expanduser() / "git" / "checkouts"


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    report: ReportConfig = field(default_factory=ReportConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def display_config(
        self, authors: bool = False, without_color: bool = False
    ) -> DisplayConfig:
        """Combine configured defaults with command-line flags."""
        return DisplayConfig(
            display_authors=authors or self.report.display_authors,
            enable_color=self.report.enable_color and not without_color,
        )


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not config.resolver.lockfile_name:
        errors.append("resolver.lockfile_name must not be empty")
    elif Path(config.resolver.lockfile_name).name != config.resolver.lockfile_name:
        errors.append("resolver.lockfile_name must be a file name, not a path")
    if not config.resolver.cargo_home:
        errors.append("resolver.cargo_home must not be empty")

    if config.logging.log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"logging.log_level must be one of {', '.join(VALID_LOG_LEVELS)}"
        )

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Ignoring config {config_path}: top level must be an object",
            style="yellow",
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".cargo-license-report.json",
        Path.home() / ".config" / "cargo-license-report" / "config.json",
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

    if cargo_home := os.environ.get("CARGO_HOME"):
        config.resolver.cargo_home = cargo_home

    config.report.display_authors = get_env_bool(
        "CARGO_LICENSE_REPORT_AUTHORS", config.report.display_authors
    )
    if get_env_bool("CARGO_LICENSE_REPORT_NO_COLOR") or os.environ.get("NO_COLOR"):
        config.report.enable_color = False

    if log_level := os.environ.get("CARGO_LICENSE_REPORT_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """
    Apply configuration from dictionary to config section.

    Values must have the same type as the section's current value; unknown
    keys and mismatched types are reported and leave the setting unchanged.
    """
    for key, value in section_data.items():
        if not hasattr(config, key) or isinstance(
            getattr(type(config), key, None), property
        ):
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )
            continue

        expected = type(getattr(config, key))
        if not isinstance(value, expected):
            console.print(
                f"⚠️  Ignoring {section_name}.{key}: expected {expected.__name__}, "
                f"got {type(value).__name__}",
                style="yellow",
            )
            continue

        setattr(config, key, value)


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in ("report", "resolver", "logging"):
                if isinstance(file_config.get(section_name), dict):
                    apply_config_section(
                        getattr(config, section_name),
                        file_config[section_name],
                        section_name,
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        defaults = ComprehensiveConfig()
        if any(error.startswith("resolver.") for error in validation_errors):
            config.resolver = defaults.resolver
        if any(error.startswith("logging.") for error in validation_errors):
            config.logging = defaults.logging

    _global_config = config
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
