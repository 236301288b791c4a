"""Main CLI interface for IoCShield."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from ..bulk import DEFAULT_RESULTS_DIR, DEFAULT_WORKERS, BulkScanner, read_paths_file, write_bulk_results
from ..core.ioc_table import IoCTable
from ..core.matcher import SEVERITY_ORDER, classify
from ..core.parsers.base import DependencyKind, DependencyRecord, OriginType
from ..exceptions import BulkScanError, IoCSourceError
from ..ioc import DEFAULT_IOC_URL, fetch_ioc_table, load_ioc_file
from ..output.formatters import SEVERITY_GUIDANCE, ConsoleFormatter, JSONFormatter
from ..scanner import ProjectScanner
from ..utils.logging import get_logger, setup_logging
from ..utils.path_utils import DependencyFileFinder

app = typer.Typer(
    name="iocshield",
    help="Scan npm projects for dependencies on known-compromised package versions",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)
logger = get_logger("CLI")

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2
EXIT_CANCELLED = 130

CSV_URL_OPTION = typer.Option(
    None,
    "--csv-url",
    envvar="IOCSHIELD_CSV_URL",
    help="URL of the IoC package CSV (default: Wiz shai-hulud 2 list)"
)
CSV_FILE_OPTION = typer.Option(
    None,
    "--csv-file",
    envvar="IOCSHIELD_CSV_FILE",
    help="Local IoC CSV file; takes precedence over --csv-url"
)


def _load_table(csv_url: Optional[str], csv_file: Optional[Path]) -> IoCTable:
    """Load the IoC table from a local file or the network, exiting on failure."""
    try:
        if csv_file:
            return load_ioc_file(csv_file)
        return fetch_ioc_table(csv_url or DEFAULT_IOC_URL)
    except IoCSourceError as e:
        logger.error(str(e))
        ConsoleFormatter(err_console).format_error("Failed to load IoC list", str(e))
        raise typer.Exit(EXIT_ERROR)


@app.command()
def scan(
    path: Path = typer.Argument(
        Path("."),
        help="Path to the project directory to scan"
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the JSON report to stdout instead of the human-readable report"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file for JSON results"
    ),
    csv_url: Optional[str] = CSV_URL_OPTION,
    csv_file: Optional[Path] = CSV_FILE_OPTION,
    lockfile_only: bool = typer.Option(
        False,
        "--lockfile-only",
        help="Only scan lockfiles (skip package.json)"
    ),
    ignore_patterns: Optional[List[str]] = typer.Option(
        None,
        "--ignore",
        help="Additional ignore patterns"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors"
    ),
) -> None:
    """Scan a project for compromised dependencies.

    Exits 0 when clean, 1 when matches are found and 2 on error.
    """
    setup_logging(verbose=verbose, quiet=quiet or json_output)

    if not path.is_dir():
        ConsoleFormatter(err_console).format_error(f"Path is not a directory: {path}")
        raise typer.Exit(EXIT_ERROR)

    table = _load_table(csv_url, csv_file)

    try:
        result = ProjectScanner(table, lockfile_only=lockfile_only, ignore_patterns=ignore_patterns).scan(path)
    except OSError as e:
        logger.error(f"Scan failed: {e}")
        ConsoleFormatter(err_console).format_error("Scan failed", str(e))
        raise typer.Exit(EXIT_ERROR)

    json_formatter = JSONFormatter(output)
    report = json_formatter.format_scan_result(result)

    if json_output:
        typer.echo(json_formatter.dumps(report))
    else:
        ConsoleFormatter(console).format_scan_result(result)

    if output:
        json_formatter.save_results(report)

    raise typer.Exit(EXIT_FINDINGS if result.has_findings else EXIT_CLEAN)


@app.command()
def bulk(
    paths_file: Path = typer.Argument(
        ...,
        help="File listing one project path per line (# starts a comment)"
    ),
    workers: int = typer.Option(
        DEFAULT_WORKERS,
        "--workers",
        "-w",
        min=1,
        help="Number of projects scanned concurrently"
    ),
    output_dir: Path = typer.Option(
        Path(DEFAULT_RESULTS_DIR),
        "--output-dir",
        "-o",
        help="Directory that receives a timestamped results folder"
    ),
    csv_url: Optional[str] = CSV_URL_OPTION,
    csv_file: Optional[Path] = CSV_FILE_OPTION,
    lockfile_only: bool = typer.Option(
        False,
        "--lockfile-only",
        help="Only scan lockfiles (skip package.json)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Scan many projects concurrently.

    Exits 0 when every project is clean, 1 when any match is found, 2 when a
    project failed to scan and 130 when interrupted.
    """
    setup_logging(verbose=verbose, quiet=not verbose)

    try:
        paths = read_paths_file(paths_file)
    except BulkScanError as e:
        ConsoleFormatter(err_console).format_error(str(e))
        raise typer.Exit(EXIT_ERROR)

    table = _load_table(csv_url, csv_file)
    formatter = ConsoleFormatter(console)

    console.print(f"Starting bulk scan of {len(paths)} paths with {workers} workers...")

    scanner = BulkScanner(table, workers=workers, lockfile_only=lockfile_only)
    summary = scanner.run(paths, on_outcome=formatter.format_outcome)

    results_dir = write_bulk_results(summary, output_dir)
    formatter.format_bulk_summary(summary, results_dir)

    if summary.cancelled:
        raise typer.Exit(EXIT_CANCELLED)
    if summary.total_matches:
        raise typer.Exit(EXIT_FINDINGS)
    if summary.failed_scans:
        raise typer.Exit(EXIT_ERROR)
    raise typer.Exit(EXIT_CLEAN)


@app.command()
def check(
    package: str = typer.Argument(..., help="Package name, e.g. @scope/name"),
    version_spec: str = typer.Argument(..., help="Version or range, e.g. 1.2.3 or ^1.2.0"),
    resolved: bool = typer.Option(
        False,
        "--resolved",
        help="Treat the version as a lockfile-resolved version"
    ),
    csv_url: Optional[str] = CSV_URL_OPTION,
    csv_file: Optional[Path] = CSV_FILE_OPTION,
) -> None:
    """Classify one package and version spec against the IoC list."""
    setup_logging(quiet=True)
    table = _load_table(csv_url, csv_file)

    record = DependencyRecord(
        name=package,
        version_text=version_spec.strip(),
        kind=DependencyKind.RESOLVED if resolved else DependencyKind.DECLARED,
        origin_type=OriginType.PACKAGE_LOCK if resolved else OriginType.DEPENDENCIES,
        source_location="command line",
    )

    compromised = table.lookup(package)
    if compromised:
        console.print(f"IoC versions for {package}: {', '.join(compromised)}")
    else:
        console.print(f"{package} is not in the IoC list")

    findings = classify(record, table)
    ConsoleFormatter(console).format_findings(findings)

    raise typer.Exit(EXIT_FINDINGS if findings else EXIT_CLEAN)


@app.command()
def info() -> None:
    """Show IoCShield information."""
    ConsoleFormatter(console).format_info(
        "[bold blue]IoCShield[/bold blue]\n"
        "Scans npm manifests and lockfiles for dependencies on\n"
        "package versions listed as compromised",
        title="Information"
    )

    console.print(f"\n[bold]Default IoC list:[/bold] {DEFAULT_IOC_URL}")
    supported = DependencyFileFinder().get_supported_files()
    console.print(f"[bold]Supported files:[/bold] {', '.join(supported)}")

    unsupported = [name for name in DependencyFileFinder.DEPENDENCY_PATTERNS if name not in supported]
    if unsupported:
        console.print(f"[bold]Detected but not yet supported:[/bold] {', '.join(unsupported)}")

    console.print("\n[bold]Severities:[/bold]")
    for severity in SEVERITY_ORDER:
        status, action = SEVERITY_GUIDANCE[severity]
        console.print(f"  {severity.value}: {status}. {action}")


def main() -> None:
    """Main entry point for IoCShield CLI."""
    app()


if __name__ == "__main__":
    main()
