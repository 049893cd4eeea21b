# In src/cargo_license_report/dependency.py
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Dependency:
    """One resolved package from the lockfile with its license metadata."""

    name: str
    version: str
    source: str
    license: Optional[str] = None
    authors: Optional[Tuple[str, ...]] = None

    def get_license(self) -> Optional[str]:
        return self.license

    def get_authors(self) -> Optional[List[str]]:
        if self.authors is None:
            return None
        return list(self.authors)
