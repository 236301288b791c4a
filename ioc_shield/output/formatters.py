"""Output formatters for IoCShield results."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..bulk import STATUS_CLEAN, STATUS_ERROR, STATUS_VULNERABLE, BulkSummary, ProjectOutcome
from ..core.matcher import SEVERITY_ORDER, Finding, Severity
from ..scanner import ScanResult
from ..utils.logging import get_logger

SEVERITY_STYLES = {
    Severity.DIRECT: "red bold",
    Severity.TRANSITIVE: "yellow bold",
    Severity.POTENTIAL: "cyan",
}

SECTION_TITLES = {
    Severity.DIRECT: "DIRECT DEPENDENCIES",
    Severity.TRANSITIVE: "TRANSITIVE DEPENDENCIES",
    Severity.POTENTIAL: "POTENTIAL MATCHES",
}

# (status, action) shown under each finding.
SEVERITY_GUIDANCE = {
    Severity.DIRECT: (
        "Exact version pin matches IoC",
        "Remove or update to a safe version immediately",
    ),
    Severity.TRANSITIVE: (
        "Resolved version in lockfile matches IoC",
        "Update parent packages to versions that don't depend on this package",
    ),
    Severity.POTENTIAL: (
        "Range could resolve to affected version",
        "Check lockfile to verify resolved version, update if affected",
    ),
}

STATUS_STYLES = {
    STATUS_CLEAN: "green",
    STATUS_VULNERABLE: "red",
    STATUS_ERROR: "yellow",
}


class ConsoleFormatter:
    """Rich console formatter for IoCShield output."""

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the console formatter.

        Args:
            console: Rich console instance
        """
        self.console = console or Console()
        self.logger = get_logger("ConsoleFormatter")

    def format_scan_result(self, result: ScanResult) -> None:
        """Display a project scan: summary panel then one section per severity.

        Args:
            result: Scan result
        """
        self.console.print(self._create_summary_panel(result))

        if not result.has_findings:
            self.console.print(Panel("No compromised packages found", style="green"))
            return

        for severity, findings in result.by_severity().items():
            if findings:
                self.console.print(self._create_severity_table(severity, findings))

        for severity in SEVERITY_ORDER:
            if any(finding.severity is severity for finding in result.findings):
                status, action = SEVERITY_GUIDANCE[severity]
                self.console.print(
                    f"[{SEVERITY_STYLES[severity]}]{severity.value}[/]: {status}. "
                    f"[bold]Action:[/bold] {action}"
                )

    def _create_summary_panel(self, result: ScanResult) -> Panel:
        """Create summary panel.

        Args:
            result: Scan result

        Returns:
            Rich panel with summary
        """
        counts = {severity: len(findings) for severity, findings in result.by_severity().items()}

        if result.has_findings:
            style = "red"
            title = f"Found {len(result.findings)} compromised package matches!"
        else:
            style = "green"
            title = "No compromised packages found"

        lines = [
            f"Path: {result.path}",
            f"IoC packages loaded: {result.ioc_count} ({result.ioc_versions} versions)",
            f"Manifests scanned: {result.manifests_scanned}",
            f"Lockfiles scanned: {result.lockfiles_scanned}",
            f"Packages checked: {result.packages_checked}",
            "Direct: {}  Transitive: {}  Potential: {}".format(
                counts[Severity.DIRECT], counts[Severity.TRANSITIVE], counts[Severity.POTENTIAL]
            ),
            f"Scan time: {result.elapsed_ms / 1000:.2f}s",
        ]
        if result.skipped_files:
            lines.append(f"Skipped files: {len(result.skipped_files)}")

        return Panel(Text("\n".join(lines)), title=title, style=style)

    def _create_severity_table(self, severity: Severity, findings: List[Finding]) -> Table:
        """Create the table for one severity.

        The declared specifier column only exists for POTENTIAL findings.

        Args:
            severity: Severity of every finding in the table
            findings: Findings to show

        Returns:
            Rich table
        """
        table = Table(title=SECTION_TITLES[severity], title_style=SEVERITY_STYLES[severity])

        table.add_column("Package", style="cyan", no_wrap=True)
        table.add_column("IoC Version", style="red")
        table.add_column(self._location_label(severity), style="white")
        if severity is Severity.POTENTIAL:
            table.add_column("Declared", style="yellow")

        for finding in findings:
            row = [Text(finding.package_name), Text(finding.version), Text(finding.source_location)]
            if severity is Severity.POTENTIAL:
                row.append(Text(finding.declared_specifier or ""))
            table.add_row(*row)

        return table

    @staticmethod
    def _location_label(severity: Severity) -> str:
        return "Resolved" if severity is Severity.TRANSITIVE else "Location"

    def format_outcome(self, outcome: ProjectOutcome, completed: int, total: int) -> None:
        """Print one progress line of a bulk run."""
        style = STATUS_STYLES.get(outcome.status, "white")
        detail = f" ({outcome.match_count} matches)" if outcome.status == STATUS_VULNERABLE else ""
        if outcome.error:
            detail = f" ({outcome.error})"
        line = Text(f"[{completed}/{total}] {outcome.path}: ")
        line.append(outcome.status, style=style)
        line.append(detail)
        self.console.print(line)

    def format_bulk_summary(self, summary: BulkSummary, results_dir: Optional[Path] = None) -> None:
        """Display the end-of-run table for a bulk scan.

        Args:
            summary: Bulk summary
            results_dir: Where reports were written
        """
        table = Table(title="Bulk Scan Complete")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Duration", f"{summary.duration_seconds:.2f}s")
        table.add_row("Paths", f"{len(summary.outcomes)}/{summary.total_paths}")
        table.add_row("Successful", str(summary.successful_scans))
        table.add_row("Failed", str(summary.failed_scans))
        table.add_row("Total matches", str(summary.total_matches))
        if results_dir:
            table.add_row("Results", str(results_dir))

        self.console.print(table)

        if summary.cancelled:
            self.console.print(Panel("Bulk scan cancelled before all paths were scanned", style="yellow"))

    def format_findings(self, findings: List[Finding]) -> None:
        """Display ad-hoc findings, e.g. from ``iocshield check``."""
        if not findings:
            self.console.print(Panel("No match", style="green"))
            return

        for finding in findings:
            status, action = SEVERITY_GUIDANCE[finding.severity]
            text = Text()
            text.append(f"{finding.severity.value} ", style=SEVERITY_STYLES[finding.severity])
            text.append(f"{finding.package_name}@{finding.version}\n")
            if finding.declared_specifier is not None:
                text.append(f"Declared: {finding.source_location} ({finding.declared_specifier})\n")
            text.append(f"Status: {status}\nAction: {action}")
            self.console.print(Panel(text, style=SEVERITY_STYLES[finding.severity]))

    def format_error(self, error: str, details: Optional[str] = None) -> None:
        """Format and display error message.

        Args:
            error: Error message
            details: Optional error details
        """
        content = Text()
        content.append("Error: ", style="bold red")
        content.append(error)
        if details:
            content.append(f"\n\n{details}", style="dim")

        self.console.print(Panel(content, style="red"))

    def format_info(self, message: str, title: Optional[str] = None) -> None:
        """Format and display info message.

        Args:
            message: Info message
            title: Optional panel title
        """
        self.console.print(Panel(message, title=title, style="blue"))


class JSONFormatter:
    """JSON formatter for IoCShield output."""

    def __init__(self, output_file: Optional[Path] = None) -> None:
        """Initialize the JSON formatter.

        Args:
            output_file: Optional output file path
        """
        self.output_file = output_file
        self.logger = get_logger("JSONFormatter")

    def format_scan_result(self, result: ScanResult) -> Dict[str, Any]:
        """Format a scan result as JSON data."""
        return result.to_dict()

    def dumps(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False)

    def save_results(
        self,
        results: Dict[str, Any],
        output_file: Optional[Path] = None
    ) -> Path:
        """Save results to JSON file.

        Args:
            results: Results dictionary
            output_file: Output file path (uses instance default if None)

        Returns:
            The path written
        """
        file_path = output_file or self.output_file
        if not file_path:
            raise ValueError("No output file specified")

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(results, f, indent=2, ensure_ascii=False)

            self.logger.info(f"Results saved to {file_path}")
        except OSError as e:
            self.logger.error(f"Failed to save results to {file_path}: {e}")
            raise

        return file_path

    def format_error(self, error: str, details: Optional[str] = None) -> Dict[str, Any]:
        """Format error as JSON.

        Args:
            error: Error message
            details: Optional error details

        Returns:
            Formatted JSON error data
        """
        return {
            "error": {
                "message": error,
                "details": details,
                "timestamp": datetime.now().isoformat()
            }
        }
