"""
License metadata resolution for packages pinned in a Cargo.lock.

Cargo unpacks every downloaded package under ``$CARGO_HOME``; the published
``Cargo.toml`` of each package carries its ``license`` and ``authors``
fields. Resolution is read-only and works offline: packages whose sources
have not been fetched are reported without license information.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

from .cli_config import ResolverConfig, get_config
from .dependency import Dependency
from .error_handling import ErrorCategory, get_error_handler, log_missing_manifest
from .parsers import MANIFEST_NAME, find_cargo_lock, parse_cargo_lock, parse_package_manifest
from .structured_logging import (
    clear_run_context,
    get_resolver_logger,
    log_dependencies_resolved,
    set_run_context,
)

REGISTRY_PREFIXES = ("registry+", "sparse+")
CRATES_IO_INDEX = "https://github.com/rust-lang/crates.io-index"
CRATES_IO_SPARSE_HOST = "index.crates.io"
GIT_PREFIX = "git+"
SHORT_REV_LENGTH = 7


class DependencySource(ABC):
    """Anything that can list the dependencies of a project."""

    @abstractmethod
    def get_dependencies(self) -> List[Dependency]:
        """
        Return dependency records in lockfile order.

        Raises:
            CargoLicenseError: If the dependency list cannot be produced
        """


class ManifestLocator:
    """Finds the unpacked ``Cargo.toml`` for a locked package."""

    def __init__(self, config: ResolverConfig):
        self.config = config

    def locate(self, name: str, version: str, source: str) -> Optional[Path]:
        """
        Return the manifest path for a package, or None if it is not on disk.

        Args:
            name: Package name
            version: Locked version
            source: Lockfile source string (``registry+...``, ``git+...``)
        """
        if source.startswith(REGISTRY_PREFIXES):
            return self._locate_registry(name, version, source)
        if source.startswith(GIT_PREFIX):
            return self._locate_git(name, source)
        return None

    def _locate_registry(self, name: str, version: str, source: str) -> Optional[Path]:
        src_dir = self.config.registry_src_dir
        if not src_dir.is_dir():
            return None

        hosts = _registry_hosts(source)
        for index_dir in sorted(src_dir.iterdir()):
            if index_dir.name.rsplit("-", 1)[0] not in hosts:
                continue
            manifest = index_dir / f"{name}-{version}" / MANIFEST_NAME
            if manifest.is_file():
                return manifest
        return None

    def _locate_git(self, name: str, source: str) -> Optional[Path]:
        checkouts_dir = self.config.git_checkouts_dir
        if not checkouts_dir.is_dir():
            return None

        repo_name, rev = _split_git_source(source)
        if not repo_name:
            return None

        for checkout in sorted(checkouts_dir.glob(f"{repo_name}-*")):
            if not checkout.is_dir():
                continue
            revisions = [checkout / rev[:SHORT_REV_LENGTH]] if rev else []
            revisions += sorted(
                p for p in checkout.iterdir() if p.is_dir() and p not in revisions
            )
            for revision_dir in revisions:
                manifest = _find_package_manifest(revision_dir, name)
                if manifest is not None:
                    return manifest
        return None


def _registry_hosts(source: str) -> Tuple[str, ...]:
    """
    Hosts whose index directories under ``registry/src`` may hold ``source``.

    Cargo names each index directory ``<host>-<hash>``. Lockfiles keep the
    git index URL for crates.io even when the sparse protocol downloaded the
    package, so crates.io matches both of its hosts.
    """
    url = source.split("+", 1)[1]
    host = urlparse(url).hostname or ""
    if url.rstrip("/") == CRATES_IO_INDEX:
        return (host, CRATES_IO_SPARSE_HOST)
    return (host,)


def _split_git_source(source: str) -> Tuple[str, str]:
    """Split ``git+<url>#<rev>`` into the repository name and revision."""
    url, _, rev = source[len(GIT_PREFIX):].partition("#")
    path = urlparse(url).path.rstrip("/")
    repo_name = path.rsplit("/", 1)[-1]
    if repo_name.endswith(".git"):
        repo_name = repo_name[: -len(".git")]
    return repo_name, rev


def _iter_manifests(root: Path) -> Iterator[Path]:
    if not root.is_dir():
        return
    for manifest in sorted(root.rglob(MANIFEST_NAME)):
        if "target" in manifest.relative_to(root).parts:
            continue
        yield manifest


def _find_package_manifest(root: Path, name: str) -> Optional[Path]:
    """Find the manifest declaring package ``name`` inside a git checkout."""
    for manifest in _iter_manifests(root):
        try:
            package = parse_package_manifest(manifest)
        except ValueError:
            continue
        if package.get("name") == name:
            return manifest
    return None


def extract_license(package: Dict) -> Optional[str]:
    """Return the SPDX license expression, or None when not a plain string."""
    license_value = package.get("license")
    if isinstance(license_value, str) and license_value.strip():
        return license_value.strip()
    return None


def extract_authors(package: Dict) -> Optional[Tuple[str, ...]]:
    """Return the authors list, or None when the manifest has none."""
    authors = package.get("authors")
    if not isinstance(authors, list):
        return None
    return tuple(author for author in authors if isinstance(author, str))


class CargoLockDependencySource(DependencySource):
    """
    Reads Cargo.lock and enriches each package with manifest metadata.

    Args:
        config: Resolver configuration (defaults to the global config)
        start_dir: Directory where lockfile discovery begins
        lockfile: Explicit lockfile path, bypassing discovery
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        start_dir: Optional[Path] = None,
        lockfile: Optional[Path] = None,
    ):
        self.config = config or get_config().resolver
        self.start_dir = start_dir
        self.lockfile = lockfile
        self.locator = ManifestLocator(self.config)
        self.error_handler = get_error_handler()
        self.missing_manifests = 0

    def _find_lockfile(self) -> Path:
        if self.lockfile is not None:
            return Path(self.lockfile)
        return find_cargo_lock(
            self.start_dir,
            lockfile_name=self.config.lockfile_name,
            search_parents=self.config.search_parents,
        )

    def resolve(self, name: str, version: str, source: str) -> Dependency:
        """Build a dependency record, reading license metadata when available."""
        manifest = self.locator.locate(name, version, source)
        if manifest is None:
            self.missing_manifests += 1
            log_missing_manifest(name, version, source, "dependency_resolver.resolve")
            return Dependency(name=name, version=version, source=source)

        try:
            package = parse_package_manifest(manifest)
        except ValueError as e:
            self.error_handler.warning(
                ErrorCategory.PARSING,
                f"Could not read manifest for {name} {version}: {e}",
                "dependency_resolver.resolve",
                exception=e,
                details={"package": name, "version": version},
            )
            self.missing_manifests += 1
            get_resolver_logger().warning(
                "manifest_unreadable", package_name=name, version=version
            )
            return Dependency(name=name, version=version, source=source)

        return Dependency(
            name=name,
            version=version,
            source=source,
            license=extract_license(package),
            authors=extract_authors(package),
        )

    def get_dependencies(self) -> List[Dependency]:
        lockfile = self._find_lockfile()
        entries = parse_cargo_lock(str(lockfile))

        self.missing_manifests = 0
        set_run_context(lockfile=str(lockfile), total_dependencies=len(entries))
        try:
            dependencies = [
                self.resolve(entry["name"], entry["version"], entry["source"])
                for entry in entries
            ]
            log_dependencies_resolved(len(dependencies), self.missing_manifests)
        finally:
            clear_run_context()

        return dependencies


def get_dependencies_from_cargo_lock(
    config: Optional[ResolverConfig] = None,
) -> List[Dependency]:
    """
    List the dependencies of the project in the current directory.

    Raises:
        LockfileNotFoundError: If no Cargo.lock can be found
        LockfileParseError: If the lockfile is not valid
    """
    return CargoLockDependencySource(config).get_dependencies()
