"""Classification of dependency records against the IoC table."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .ioc_table import IoCTable
from .parsers.base import DependencyKind, DependencyRecord
from .semver import UnparseableRange, is_exact_version, parse_range, parse_version, versions_equal


class Severity(str, Enum):
    """How a compromised version was reached."""

    DIRECT = "DIRECT"
    TRANSITIVE = "TRANSITIVE"
    POTENTIAL = "POTENTIAL"


# Display and grouping order.
SEVERITY_ORDER: Tuple[Severity, ...] = (Severity.DIRECT, Severity.TRANSITIVE, Severity.POTENTIAL)


@dataclass(frozen=True)
class Finding:
    """A dependency matching a compromised version.

    Identity for deduplication is ``(package_name, version, severity)``;
    location and declared specifier are carried but not compared.
    """

    package_name: str
    version: str
    severity: Severity
    source_location: str
    declared_specifier: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate finding data."""
        if not self.package_name:
            raise ValueError("Finding package name cannot be empty")
        if self.declared_specifier is not None and self.severity is not Severity.POTENTIAL:
            raise ValueError("Only POTENTIAL findings carry a declared specifier")

    @property
    def key(self) -> Tuple[str, str, Severity]:
        return (self.package_name, self.version, self.severity)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON report shape."""
        data: Dict[str, Any] = {
            "packageName": self.package_name,
            "version": self.version,
            "severity": self.severity.value,
            "location": self.source_location,
        }
        if self.declared_specifier is not None:
            data["declaredSpec"] = self.declared_specifier
        return data


def _first_equal(version_text: str, candidates: Iterable[str]) -> Optional[str]:
    for candidate in candidates:
        if versions_equal(version_text, candidate):
            return candidate
    return None


def classify(record: DependencyRecord, table: IoCTable) -> List[Finding]:
    """Classify one dependency record.

    Resolved records yield at most one TRANSITIVE finding and exact declared
    pins at most one DIRECT finding. A declared range yields one POTENTIAL
    finding for every compromised version it covers. Unparseable ranges and
    non-version specifiers yield nothing.

    Args:
        record: Normalized dependency record
        table: IoC table to consult

    Returns:
        Zero or more findings
    """
    compromised = table.lookup(record.name)
    if not compromised:
        return []

    if record.kind is DependencyKind.RESOLVED:
        matched = _first_equal(record.version_text, compromised)
        if matched is None:
            return []
        return [Finding(record.name, matched, Severity.TRANSITIVE, record.source_location)]

    if is_exact_version(record.version_text):
        matched = _first_equal(record.version_text, compromised)
        if matched is None:
            return []
        return [Finding(record.name, matched, Severity.DIRECT, record.source_location)]

    specifier = parse_range(record.version_text)
    if isinstance(specifier, UnparseableRange):
        return []

    findings = []
    for candidate in compromised:
        version = parse_version(candidate)
        if version is not None and specifier.is_satisfied_by(version):
            findings.append(
                Finding(
                    record.name,
                    candidate,
                    Severity.POTENTIAL,
                    record.source_location,
                    declared_specifier=record.version_text,
                )
            )

    return findings


def classify_records(records: Iterable[DependencyRecord], table: IoCTable) -> List[Finding]:
    """Classify records in order and concatenate their findings."""
    findings: List[Finding] = []
    for record in records:
        findings.extend(classify(record, table))
    return findings


def dedupe(findings: Iterable[Finding]) -> List[Finding]:
    """Drop findings whose identity was already seen.

    Stable: survivors keep their first-seen order and the first occurrence's
    location and specifier.

    Args:
        findings: Findings in encounter order

    Returns:
        Deduplicated findings
    """
    seen: Set[Tuple[str, str, Severity]] = set()
    unique = []

    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)
        unique.append(finding)

    return unique


def match_records(records: Iterable[DependencyRecord], table: IoCTable) -> List[Finding]:
    """Classify and deduplicate a record stream in one call."""
    return dedupe(classify_records(records, table))


def group_by_severity(findings: Iterable[Finding]) -> Dict[Severity, List[Finding]]:
    """Group findings by severity, preserving order within each group.

    Every severity is present as a key, possibly with an empty list.
    """
    groups: Dict[Severity, List[Finding]] = {severity: [] for severity in SEVERITY_ORDER}
    for finding in findings:
        groups[finding.severity].append(finding)
    return groups
