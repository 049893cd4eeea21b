import logging
import sys
from typing import Optional

import click
from rich.console import Console

from .cli_config import ComprehensiveConfig, load_config
from .dependency_resolver import CargoLockDependencySource, DependencySource
from .error_handling import CargoLicenseError, LockfileNotFoundError, setup_error_handling
from .reporting import LicenseReporter
from .structured_logging import configure_logging

__version__ = "0.1.0"

console = Console(highlight=False)

LOCKFILE_NOT_FOUND_MESSAGE = "Cargo.lock file not found. Try building the project first."


def build_dependency_source(config: ComprehensiveConfig) -> DependencySource:
    """Create the dependency source for the project in the current directory."""
    return CargoLockDependencySource(config.resolver)


def _configure_diagnostics(config: ComprehensiveConfig) -> None:
    configure_logging(config.logging.log_level, config.logging.enable_json)
    setup_error_handling(
        log_level=getattr(logging, config.logging.log_level.upper(), logging.WARNING)
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--authors", "-a", is_flag=True, help="Display crate authors.")
@click.option(
    "--do-not-bundle",
    "-d",
    is_flag=True,
    help="Output one license per line.",
)
@click.option("--without-color", "-m", is_flag=True, help="Output without color.")
@click.version_option(__version__, "-V", "--version", prog_name="cargo-license-report")
@click.pass_context
def cli(
    ctx: click.Context,
    authors: bool,
    do_not_bundle: bool,
    without_color: bool,
) -> None:
    """
    List the licenses of the dependencies pinned in Cargo.lock.

    By default dependencies are bundled by license; use -d for one line per
    dependency.

    Examples:

      cargo-license-report

      cargo-license-report --authors --do-not-bundle

      cargo-license-report -m > licenses.txt
    """
    config = load_config()
    _configure_diagnostics(config)

    display = config.display_config(authors=authors, without_color=without_color)
    bundle = not (do_not_bundle or config.report.do_not_bundle)

    source: Optional[DependencySource] = (
        ctx.obj if isinstance(ctx.obj, DependencySource) else None
    )
    if source is None:
        source = build_dependency_source(config)

    try:
        dependencies = source.get_dependencies()
    except LockfileNotFoundError as e:
        console.print(f"{LOCKFILE_NOT_FOUND_MESSAGE}\n{e}", markup=False, soft_wrap=True)
        ctx.exit(1)
    except CargoLicenseError as e:
        Console(stderr=True).print(f"❌ Error: {e}", style="red", markup=False)
        ctx.exit(1)
    except KeyboardInterrupt:
        Console(stderr=True).print("\n⚠️  Interrupted by user", style="yellow")
        sys.exit(130)

    reporter = LicenseReporter(display, console=console if display.enable_color else None)
    reporter.print_report(dependencies, do_not_bundle=not bundle)


if __name__ == "__main__":
    cli()
