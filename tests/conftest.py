"""
Shared fixtures for cargo-license-report tests.
Builds throwaway Cargo projects and a fake Cargo home on disk.
"""

import pytest

from cargo_license_report.cli_config import ResolverConfig, reset_config
from cargo_license_report.dependency import Dependency
from cargo_license_report.dependency_resolver import DependencySource
from cargo_license_report.error_handling import setup_error_handling

CRATES_IO = "registry+https://github.com/rust-lang/crates.io-index"
GIT_SOURCE = (
    "git+https://github.com/example/mycrate-repo?branch=main"
    "#0123456789abcdef0123456789abcdef01234567"
)

SAMPLE_CARGO_LOCK = f"""# This file is automatically @generated by Cargo.
# It is not intended for manual editing.
version = 3

[[package]]
name = "demo"
version = "0.1.0"
dependencies = [
 "itoa",
 "libc",
 "mycrate",
 "serde",
 "unknown-crate",
]

[[package]]
name = "itoa"
version = "1.0.9"
source = "{CRATES_IO}"
checksum = "af150ab688ff2122fcef229be89cb50dd66af9e01a4ff320cc137eecc9bacc38"

[[package]]
name = "libc"
version = "0.2.147"
source = "{CRATES_IO}"
checksum = "b4668fb0ea861c1df094127ac5f1da3409a82116a4ba74fca2e58ef927159bb3"

[[package]]
name = "mycrate"
version = "0.3.0"
source = "{GIT_SOURCE}"

[[package]]
name = "serde"
version = "1.0.188"
source = "{CRATES_IO}"
checksum = "cf9e0fcba69a370eed61bcf2b728575f726b50b55cba78064753d708ddc7549e"

[[package]]
name = "unknown-crate"
version = "2.0.0"
source = "{CRATES_IO}"
"""

REGISTRY_MANIFESTS = {
    ("itoa", "1.0.9"): """[package]
name = "itoa"
version = "1.0.9"
authors = ["David Tolnay <dtolnay@gmail.com>"]
license = "MIT OR Apache-2.0"
""",
    ("libc", "0.2.147"): """[package]
name = "libc"
version = "0.2.147"
authors = ["The Rust Project Developers"]
license = "MIT OR Apache-2.0"
""",
    ("serde", "1.0.188"): """[package]
name = "serde"
version = "1.0.188"
authors = [
    "Erick Tryzelaar <erick.tryzelaar@gmail.com>",
    "David Tolnay <dtolnay@gmail.com>",
]
license = "MIT OR Apache-2.0"
""",
}

GIT_MANIFESTS = {
    "mycrate": """[package]
name = "mycrate"
version = "0.3.0"
authors = ["Example Dev <dev@example.com>"]
license = "BSD-3-Clause"
""",
    "mycrate-macros": """[package]
name = "mycrate-macros"
version = "0.3.0"
license = "MIT"
""",
}


class FakeDependencySource(DependencySource):
    """Dependency source returning a fixed list or raising a fixed error."""

    def __init__(self, dependencies=None, error=None):
        self.dependencies = list(dependencies or [])
        self.error = error
        self.calls = 0

    def get_dependencies(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.dependencies)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config and environment out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "CARGO_HOME",
        "CARGO_LICENSE_REPORT_AUTHORS",
        "CARGO_LICENSE_REPORT_NO_COLOR",
        "CARGO_LICENSE_REPORT_LOG_LEVEL",
        "NO_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    setup_error_handling()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Scratch directory separate from the fake home."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def cargo_home(tmp_path, monkeypatch):
    """A Cargo home with unpacked registry and git sources."""
    home = tmp_path / "cargo-home"
    index_dir = home / "registry" / "src" / "index.crates.io-6f17d22bba15001f"
    for (name, version), manifest in REGISTRY_MANIFESTS.items():
        crate_dir = index_dir / f"{name}-{version}"
        crate_dir.mkdir(parents=True)
        (crate_dir / "Cargo.toml").write_text(manifest)

    checkout = home / "git" / "checkouts" / "mycrate-repo-1a2b3c4d5e6f7a8b" / "0123456"
    for crate_name, manifest in GIT_MANIFESTS.items():
        crate_dir = checkout / crate_name
        crate_dir.mkdir(parents=True)
        (crate_dir / "Cargo.toml").write_text(manifest)

    monkeypatch.setenv("CARGO_HOME", str(home))
    return home


@pytest.fixture
def resolver_config(cargo_home):
    return ResolverConfig(cargo_home=str(cargo_home))


@pytest.fixture
def sample_project(temp_dir):
    """A Cargo project directory with a lockfile and a nested source dir."""
    project = temp_dir / "demo"
    (project / "src" / "bin").mkdir(parents=True)
    (project / "Cargo.toml").write_text('[package]\nname = "demo"\nversion = "0.1.0"\n')
    (project / "Cargo.lock").write_text(SAMPLE_CARGO_LOCK)
    return project


@pytest.fixture
def sample_dependencies():
    """Synthetic records covering present, missing and shared metadata."""
    return [
        Dependency("serde", "1.0.188", CRATES_IO, "MIT OR Apache-2.0", ("Erick", "David")),
        Dependency("unknown-crate", "2.0.0", CRATES_IO, None, None),
        Dependency("itoa", "1.0.9", CRATES_IO, "MIT OR Apache-2.0", ("David",)),
        Dependency("mycrate", "0.3.0", GIT_SOURCE, "BSD-3-Clause", ()),
    ]
