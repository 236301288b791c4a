"""Base parser class and data models for dependency parsing."""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...exceptions import ManifestParseError


class DependencyKind(str, Enum):
    """Whether a record comes from a manifest or a lockfile."""

    DECLARED = "declared"
    RESOLVED = "resolved"


class OriginType(str, Enum):
    """Section or lockfile dialect a record was read from."""

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"
    BUNDLED_DEPENDENCIES = "bundledDependencies"
    PACKAGE_LOCK = "package-lock"
    YARN_LOCK = "yarn-lock"


@dataclass(frozen=True)
class DependencyRecord:
    """A normalized dependency as handed to the classifier.

    ``version_text`` is a specifier (exact or range) for declared records and
    a concrete version for resolved ones. Bundled dependencies carry an empty
    version text.
    """

    name: str
    version_text: str
    kind: DependencyKind
    origin_type: OriginType
    source_location: str

    def __post_init__(self) -> None:
        """Validate the record."""
        if not self.name:
            raise ValueError("Dependency name cannot be empty")


@dataclass
class ParsedDependencies:
    """Container for records parsed from one file."""

    records: List[DependencyRecord] = field(default_factory=list)
    source_file: Optional[Path] = None
    parser_type: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_record(self, record: DependencyRecord) -> None:
        """Add a record to the collection.

        Args:
            record: Record to add
        """
        self.records.append(record)

    def get_package_names(self) -> List[str]:
        """Get distinct package names in first-seen order.

        Returns:
            List of package names
        """
        return list(dict.fromkeys(record.name for record in self.records))

    def find_record(self, name: str) -> Optional[DependencyRecord]:
        """Find the first record for a package.

        Args:
            name: Package name to find

        Returns:
            Record if found, None otherwise
        """
        for record in self.records:
            if record.name == name:
                return record
        return None

    def filter_by_origin(self, origin_type: OriginType) -> List[DependencyRecord]:
        """Filter records by the section or dialect they came from.

        Args:
            origin_type: Origin to filter by

        Returns:
            Matching records
        """
        return [record for record in self.records if record.origin_type is origin_type]

    def __len__(self) -> int:
        return len(self.records)


class BaseParser(ABC):
    """Abstract base class for manifest and lockfile parsers."""

    # File names this parser handles.
    file_names: List[str] = []
    parser_type: str = ""
    kind: DependencyKind = DependencyKind.DECLARED

    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file.

        Args:
            file_path: Path to the file to check

        Returns:
            True if parser can handle the file
        """
        return file_path.name in self.file_names

    @abstractmethod
    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a dependency file.

        Args:
            file_path: Path to the file to parse

        Returns:
            Parsed records from the file

        Raises:
            ManifestParseError: If the file cannot be decoded
        """
        pass

    def validate_file(self, file_path: Path) -> None:
        """Validate that the file exists and is readable.

        Args:
            file_path: Path to validate

        Raises:
            ManifestParseError: If the file is missing, not a file, or unreadable
        """
        if not file_path.exists():
            raise ManifestParseError(f"File not found: {file_path}")

        if not file_path.is_file():
            raise ManifestParseError(f"Path is not a file: {file_path}")

        if not os.access(file_path, os.R_OK):
            raise ManifestParseError(f"File is not readable: {file_path}")

    def _read_text(self, file_path: Path) -> str:
        self.validate_file(file_path)
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestParseError(f"Cannot read {file_path}: {e}") from e

    def _load_json(self, file_path: Path) -> Dict[str, Any]:
        """Read and decode a JSON document whose top level is an object."""
        text = self._read_text(file_path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestParseError(f"Invalid JSON in {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestParseError(f"Expected a JSON object in {file_path}")

        return data

    def _new_result(self, file_path: Path) -> ParsedDependencies:
        return ParsedDependencies(source_file=file_path, parser_type=self.parser_type)
