"""Command line interface for fixture-diff."""

import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Literal

from cyclopts import App
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from fixture_diff.comparator import ColumnSelection, Comparator
from fixture_diff.config import load_config
from fixture_diff.fixtures import FixtureFormat, FixtureLoadError, load_directory
from fixture_diff.inspection import read_only_sqlite, read_table_set
from fixture_diff.policy import PolicyRegistry
from fixture_diff.reporting import result_to_html, result_to_summary

app = App(help="Compare expected table fixtures against a database")


type Format = Literal["table", "yaml", "json", "html"]


console = Console()
err_console = Console(stderr=True)

# Constants
SQLITE_EXTENSIONS = {".sqlite", ".db", ".sqlite3"}


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def configure_logging(*, verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def validate_location(location: Path, *, directory: bool = False) -> None:
    """Validate that an input file or directory exists."""
    if not location.exists():
        print_error(f"Path does not exist: {location}")
        sys.exit(1)
    if directory != location.is_dir():
        kind = "a directory" if directory else "a file"
        print_error(f"Path is not {kind}: {location}")
        sys.exit(1)


def validate_database_extension(
    database_location: Path,
    file_extensions: Iterable[str],
) -> None:
    """Validate database file extension."""
    if database_location.suffix.lower() not in file_extensions:
        print_error(
            f"Database file has invalid extension: {', '.join(file_extensions)}",
        )
        sys.exit(1)


def load_policies(policies: Path | None) -> PolicyRegistry:
    """Load the policy file, or strict defaults when none is given."""
    if policies is None:
        return PolicyRegistry()
    validate_location(policies)
    try:
        return load_config(policies)
    except ValueError as e:
        print_error(f"Invalid policy file {policies}: {e}")
        sys.exit(1)


def format_comparison_table(data: Iterable[dict[str, Any]]) -> None:
    """Format comparison summary as a rich table."""
    data = list(data)
    if not data:
        console.print("No differences found.")
        return

    table = Table(title="Fixture Comparison Results")
    table.add_column("Table", style="bold cyan")
    table.add_column("Differences", style="bold yellow")
    table.add_column("Cell", style="yellow")
    table.add_column("Structure", style="yellow")

    for comparison in data:
        table.add_row(
            comparison.get("name", ""),
            str(comparison.get("differences", 0)),
            str(comparison.get("cells", 0)),
            str(comparison.get("structure", 0)),
        )

    console.print(table)


@app.command
def compare(  # noqa: PLR0913
    fixtures: Path,
    database: Path,
    fmt: Format = "table",
    *,
    policies: Path | None = None,
    ignore: list[str] | None = None,
    fixture_format: FixtureFormat = "csv",
    verbose: bool = False,
) -> None:
    """Compare a fixture directory against a SQLite database.

    Exits with status 1 when any difference is found.
    """
    configure_logging(verbose=verbose)

    validate_location(fixtures, directory=True)
    print_info(f"Fixtures: {fixtures}")

    validate_location(database)
    validate_database_extension(database, SQLITE_EXTENSIONS)
    print_info(f"Database: {database}")

    registry = load_policies(policies)
    selection = ColumnSelection.ignoring(ignore) if ignore else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
    ) as progress:
        task = progress.add_task("Loading fixtures...", total=None)
        try:
            expected = load_directory(fixtures, fixture_format)
        except FixtureLoadError as e:
            print_error(str(e))
            sys.exit(1)

        progress.update(task, description="Reading database...")
        try:
            actual = read_table_set(read_only_sqlite(database), expected)
        except SQLAlchemyError as e:
            print_error(f"Failed to read database: {e}")
            sys.exit(1)

        progress.update(task, description="Comparing tables...")
        result = Comparator(registry, selection).compare_table_sets(expected, actual)

    # Output to stdout in requested format (keep stdout clean for data)
    if fmt == "html":
        for chunk in result_to_html(result):
            sys.stdout.write(chunk)
    elif fmt == "json":
        sys.stdout.write(result.to_json())
    elif fmt == "yaml":
        sys.stdout.write(result.to_yaml())
    elif fmt == "table":
        format_comparison_table(result_to_summary(result))

    result.freeze()
    if result.has_differences():
        print_error(result.summary())
        sys.exit(1)
    print_success("No differences found")


@app.command
def policies(config: Path) -> None:
    """Show the comparison policies declared in a TOML file."""
    registry = load_policies(config)

    table = Table(title=f"Comparison Policies (default: {registry.default})")
    table.add_column("Table", style="bold cyan")
    table.add_column("Column", style="bold")
    table.add_column("Policy", style="yellow")
    for table_name, column, policy in registry.rules():
        table.add_row(table_name or "*", str(column), str(policy))
    console.print(table)


if __name__ == "__main__":
    app()
