"""
Reporting and output formatting for dependency license reports.

Builds each report line as a Rich ``Text`` so that colored and plain output
share the same underlying string; color only changes the attached styles.
"""

from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.segment import Segments
from rich.text import Text

from .cli_config import DisplayConfig
from .dependency import Dependency
from .structured_logging import log_report_rendered

NOT_AVAILABLE = "N/A"
NAME_STYLE = "bold green"
BY_STYLE = "green"
AUTHOR_SEPARATOR = ", "


def license_key(dependency: Dependency) -> str:
    """Grouping key for a dependency: its license, or ``N/A`` when absent."""
    license_value = dependency.get_license()
    return NOT_AVAILABLE if license_value is None else license_value


def group_by_license(dependencies: Iterable[Dependency]) -> Dict[str, List[Dependency]]:
    """
    Partition dependencies by license.

    Args:
        dependencies: Dependency records in any order

    Returns:
        Dict[str, List[Dependency]]: License to dependencies, keys in sorted
        order, each bucket in input order
    """
    table: Dict[str, List[Dependency]] = {}
    for dependency in dependencies:
        table.setdefault(license_key(dependency), []).append(dependency)
    return {license_name: table[license_name] for license_name in sorted(table)}


def collect_authors(dependencies: Iterable[Dependency]) -> List[str]:
    """Sorted, de-duplicated union of the authors of ``dependencies``."""
    return sorted(
        {author for dependency in dependencies for author in (dependency.get_authors() or [])}
    )


class LicenseReporter:
    """Formats and displays dependency license reports."""

    def __init__(self, display: DisplayConfig, console: Optional[Console] = None):
        self.display = display
        self.console = console or Console(
            highlight=False,
            color_system="auto" if display.enable_color else None,
        )

    def paint(self, text: str, style: str) -> Text:
        """Return ``text`` styled when color is enabled, plain otherwise."""
        return Text(text, style=style if self.display.enable_color else "")

    def format_license_groups(self, dependencies: List[Dependency]) -> List[Text]:
        """One entry per license group, in license order."""
        lines = []
        for license_name, group in group_by_license(dependencies).items():
            names = ", ".join(dependency.name for dependency in group)
            if self.display.display_authors:
                lines.append(
                    Text.assemble(
                        self.paint(license_name, NAME_STYLE),
                        f" ({len(group)})\n{names}\n",
                        self.paint("by", BY_STYLE),
                        " ",
                        AUTHOR_SEPARATOR.join(collect_authors(group)),
                    )
                )
            else:
                lines.append(
                    Text.assemble(
                        self.paint(license_name, NAME_STYLE),
                        f" ({len(group)}): {names}",
                    )
                )
        return lines

    def format_dependency_lines(self, dependencies: List[Dependency]) -> List[Text]:
        """One entry per dependency, in input order."""
        lines = []
        for dependency in dependencies:
            line = Text.assemble(
                self.paint(dependency.name, NAME_STYLE),
                f': {dependency.version}, "{license_key(dependency)}", {dependency.source}',
            )
            if self.display.display_authors:
                authors = AUTHOR_SEPARATOR.join(dependency.get_authors() or [])
                line.append(", ")
                line.append_text(self.paint("by", BY_STYLE))
                line.append(f' "{authors}"')
            lines.append(line)
        return lines

    def _print_lines(self, lines: List[Text]) -> None:
        # Printed as segments: rendering a Text directly would expand tabs.
        for line in lines:
            self.console.print(Segments(line.render(self.console, end="\n")), soft_wrap=True)

    def group_by_license_type(self, dependencies: List[Dependency]) -> None:
        """Print the report bundled by license."""
        lines = self.format_license_groups(dependencies)
        self._print_lines(lines)
        log_report_rendered("grouped", len(dependencies), len(lines))

    def one_license_per_line(self, dependencies: List[Dependency]) -> None:
        """Print the report with one dependency per line."""
        self._print_lines(self.format_dependency_lines(dependencies))
        log_report_rendered("one_per_line", len(dependencies), 0)

    def print_report(self, dependencies: List[Dependency], do_not_bundle: bool = False) -> None:
        if do_not_bundle:
            self.one_license_per_line(dependencies)
        else:
            self.group_by_license_type(dependencies)
