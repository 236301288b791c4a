"""Single-project scan: discover files, parse, classify, deduplicate."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.ioc_table import IoCTable
from .core.matcher import Finding, Severity, classify, dedupe, group_by_severity
from .core.parsers import ParserRegistry, registry as default_registry
from .core.parsers.base import DependencyRecord
from .exceptions import ManifestParseError
from .utils.logging import get_logger
from .utils.path_utils import DependencyFile, DependencyFileFinder

logger = get_logger("scanner")


@dataclass
class ScanResult:
    """Outcome of scanning one project directory."""

    path: str
    manifests_scanned: int = 0
    lockfiles_scanned: int = 0
    packages_checked: int = 0
    findings: List[Finding] = field(default_factory=list)
    ioc_count: int = 0
    ioc_versions: int = 0
    timestamp: str = ""
    elapsed_ms: float = 0.0
    skipped_files: List[str] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)

    def by_severity(self) -> Dict[Severity, List[Finding]]:
        """Findings grouped by severity, every severity present."""
        return group_by_severity(self.findings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON report shape.

        Returns:
            Summary with camelCase keys
        """
        return {
            "path": self.path,
            "iocCount": self.ioc_count,
            "iocVersions": self.ioc_versions,
            "manifestsScanned": self.manifests_scanned,
            "lockfilesScanned": self.lockfiles_scanned,
            "packagesChecked": self.packages_checked,
            "timestamp": self.timestamp,
            "elapsedMs": round(self.elapsed_ms, 2),
            "skippedFiles": list(self.skipped_files),
            "matches": [finding.to_dict() for finding in self.findings],
        }


class ProjectScanner:
    """Scans one npm project against a shared IoC table."""

    def __init__(
        self,
        table: IoCTable,
        lockfile_only: bool = False,
        ignore_patterns: Optional[List[str]] = None,
        parser_registry: Optional[ParserRegistry] = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            table: IoC table, read-only and shareable between scanners
            lockfile_only: Skip package.json manifests
            ignore_patterns: Extra glob patterns to prune during discovery
            parser_registry: Parsers to use, defaults to the built-in registry
        """
        self.table = table
        self.lockfile_only = lockfile_only
        self.finder = DependencyFileFinder(ignore_patterns)
        self.registry = parser_registry or default_registry

    def scan(self, path: Path) -> ScanResult:
        """Scan a project directory.

        Manifests are classified before lockfiles and findings are
        deduplicated once for the whole project. A file that fails to parse
        is logged and recorded as skipped.

        Args:
            path: Project root

        Returns:
            Scan result

        Raises:
            NotADirectoryError: If path is not a directory
        """
        start = time.perf_counter()
        result = ScanResult(
            path=str(path),
            ioc_count=self.table.count(),
            ioc_versions=self.table.size(),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        discovered = self.finder.find(path)

        for dep_file in discovered.unsupported_lockfiles:
            logger.warning(f"{dep_file.path.name} is not yet supported, skipping {dep_file.path}")
            result.skipped_files.append(str(dep_file.path))

        collected: List[Finding] = []

        if not self.lockfile_only:
            for dep_file in discovered.manifests:
                records = self._parse(dep_file, result)
                if records is None:
                    continue
                result.manifests_scanned += 1
                collected.extend(self._classify(records, result))

        for dep_file in discovered.supported_lockfiles:
            records = self._parse(dep_file, result)
            if records is None:
                continue
            result.lockfiles_scanned += 1
            collected.extend(self._classify(records, result))

        result.findings = dedupe(collected)
        result.elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"Scanned {result.manifests_scanned} manifests and {result.lockfiles_scanned} "
            f"lockfiles in {path}: {result.packages_checked} packages checked, "
            f"{len(result.findings)} findings"
        )
        return result

    def _parse(self, dep_file: DependencyFile, result: ScanResult) -> Optional[List[DependencyRecord]]:
        try:
            parsed = self.registry.parse_file(dep_file.path)
        except ManifestParseError as e:
            logger.warning(f"Could not parse {dep_file.path}: {e}")
            result.skipped_files.append(str(dep_file.path))
            return None

        if parsed is None:
            result.skipped_files.append(str(dep_file.path))
            return None

        logger.debug(f"Parsed {len(parsed)} records from {dep_file.path}")
        return parsed.records

    def _classify(self, records: List[DependencyRecord], result: ScanResult) -> List[Finding]:
        findings = []

        for record in records:
            result.packages_checked += 1
            for finding in classify(record, self.table):
                self._log_finding(finding)
                findings.append(finding)

        return findings

    @staticmethod
    def _log_finding(finding: Finding) -> None:
        message = (
            f"{finding.severity.value} match: {finding.package_name}@{finding.version} "
            f"in {finding.source_location}"
        )
        if finding.severity is Severity.POTENTIAL:
            logger.debug(f"{message} (declared {finding.declared_specifier})")
        else:
            logger.warning(message)


def scan_project(path: Path, table: IoCTable, lockfile_only: bool = False) -> ScanResult:
    """Convenience function to scan one project."""
    return ProjectScanner(table, lockfile_only=lockfile_only).scan(path)
