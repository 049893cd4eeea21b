from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .error_handling import (
    ErrorCallback,
    ErrorCategory,
    LockfileNotFoundError,
    LockfileParseError,
    get_error_handler,
    log_parsing_error,
)
from .structured_logging import get_lockfile_logger, log_lockfile_parsed

LOCKFILE_NAME = "Cargo.lock"
MANIFEST_NAME = "Cargo.toml"


def _safe_read_file(path: Path) -> str:
    """
    Read a text file, converting OS-level failures to ValueError.

    Args:
        path: The file to read

    Returns:
        str: File contents

    Raises:
        ValueError: If file cannot be read
    """
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except PermissionError:
        raise ValueError(f"Permission denied reading {path}")
    except OSError as e:
        raise ValueError(f"Error reading {path}: {e}")


def find_cargo_lock(
    start: Optional[Path] = None,
    lockfile_name: str = LOCKFILE_NAME,
    search_parents: bool = True,
) -> Path:
    """
    Locate the lockfile for the project containing ``start``.

    Cargo writes the lockfile next to the workspace root manifest, so the
    search walks from ``start`` towards the filesystem root.

    Args:
        start: Directory to start from (defaults to the current directory)
        lockfile_name: File name to look for
        search_parents: Whether to continue into parent directories

    Returns:
        Path: Resolved path to the lockfile

    Raises:
        LockfileNotFoundError: If no lockfile exists on the search path
    """
    start_dir = (start or Path.cwd()).resolve()
    candidates = [start_dir, *start_dir.parents] if search_parents else [start_dir]

    for directory in candidates:
        candidate = directory / lockfile_name
        if candidate.is_file():
            get_lockfile_logger().debug("lockfile_found", lockfile=str(candidate))
            return candidate

    where = f"`{start_dir}` or any parent directory" if search_parents else f"`{start_dir}`"
    raise LockfileNotFoundError(f"could not find `{lockfile_name}` in {where}")


def parse_cargo_lock(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> List[Dict[str, str]]:
    """
    Parses a Cargo.lock file and returns the packages it pins.

    Cargo.lock files use TOML format and list every resolved package as a
    ``[[package]]`` table. Packages without a ``source`` are the workspace's
    own crates (or path crates) and are not reported. The ``[root]`` table
    of version 1 lockfiles describes the root crate and is ignored.

    Args:
        file_path: Path to the Cargo.lock file
        error_callback: Optional callback for handling parsing errors

    Returns:
        List[Dict[str, str]]: ``name``/``version``/``source`` dictionaries in
        lockfile order

    Raises:
        LockfileNotFoundError: If the file does not exist
        LockfileParseError: If file cannot be read or contains invalid TOML
    """
    path = Path(file_path)
    if not path.is_file():
        raise LockfileNotFoundError(f"could not find `{path}`")

    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)
    try:
        data = _load_lockfile(path)
    finally:
        if error_callback:
            error_handler.unregister_callback(error_callback, ErrorCategory.PARSING)

    packages = data.get("package", [])
    if not isinstance(packages, list):
        raise LockfileParseError(f"Malformed {path.name}: `package` must be an array of tables")

    dependencies = []
    skipped_local = 0

    for package in packages:
        if not isinstance(package, dict):
            continue

        name = str(package.get("name", "")).strip()
        version = str(package.get("version", "")).strip()
        source = package.get("source")

        if not name:
            continue
        if source is None:
            skipped_local += 1
            continue

        dependencies.append(
            {
                "name": name,
                "version": version or "unknown",
                "source": str(source),
            }
        )

    log_lockfile_parsed(str(path), len(dependencies), skipped_local)
    return dependencies


def _load_lockfile(path: Path) -> Dict[str, Any]:
    try:
        return toml.loads(_safe_read_file(path))
    except toml.TomlDecodeError as e:
        log_parsing_error(
            f"Invalid TOML format in {path.name}: {e}",
            "parsers.parse_cargo_lock",
            file_path=str(path),
            exception=e,
        )
        raise LockfileParseError(f"Invalid TOML format in {path}: {e}") from e
    except ValueError as e:
        log_parsing_error(
            f"Error reading {path.name}: {e}",
            "parsers.parse_cargo_lock",
            file_path=str(path),
            exception=e,
        )
        raise LockfileParseError(str(e)) from e


def parse_package_manifest(file_path: Path) -> Dict[str, Any]:
    """
    Parses a Cargo.toml file and returns its ``[package]`` table.

    Args:
        file_path: Path to the Cargo.toml file

    Returns:
        Dict[str, Any]: The package table, empty when the manifest has none

    Raises:
        ValueError: If file cannot be read or contains invalid TOML
    """
    try:
        data = toml.loads(_safe_read_file(file_path))
    except toml.TomlDecodeError as e:
        raise ValueError(f"Invalid TOML format in {file_path}: {e}") from e

    package = data.get("package")
    return package if isinstance(package, dict) else {}
