"""Minimal npm-flavoured semantic versioning for IoC matching.

Only the subset needed to compare declared and resolved npm versions against a
list of compromised releases is supported: ``major.minor.patch`` with an
optional prerelease tag, and the exact, caret, tilde, comparator and wildcard
range forms. Parse failures are values (``None`` or ``UnparseableRange``),
never exceptions.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import total_ordering
from typing import Callable, Dict, Optional, Tuple, Type

LESS = -1
EQUAL = 0
GREATER = 1

# Characters whose presence means a specifier is a range, not a pin.
RANGE_OPERATOR_CHARS = frozenset("^~><=*x")

_VERSION_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)(?:-([A-Za-z0-9.-]+))?")
_OPERAND_PATTERN = re.compile(r"v?[0-9]+\.[0-9]+\.[0-9]+(?:-[A-Za-z0-9.-]+)?(?:\+[A-Za-z0-9.-]+)?")
_PARTIAL_WILDCARD_PATTERN = re.compile(r"([0-9]+)\.([x*]|([0-9]+)\.[x*])")


@total_ordering
@dataclass(frozen=True)
class Version:
    """A parsed ``major.minor.patch[-prerelease]`` version."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate version components."""
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError("Version components must be non-negative")
        if self.prerelease == "":
            raise ValueError("Prerelease tag cannot be empty")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) == LESS

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease else core


def parse_version(text: Optional[str]) -> Optional[Version]:
    """Parse a version string.

    A single leading ``v`` is stripped. Anything after the matched
    ``major.minor.patch[-prerelease]`` is ignored.

    Args:
        text: Version string such as ``"1.2.3"`` or ``"v1.2.3-beta.1"``

    Returns:
        Parsed Version, or None if the text is not a recognized version
    """
    if not text or not isinstance(text, str):
        return None

    if text.startswith("v"):
        text = text[1:]

    match = _VERSION_PATTERN.match(text)
    if not match:
        return None

    return Version(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3)),
        prerelease=match.group(4),
    )


def compare(a: Version, b: Version) -> int:
    """Compare two versions.

    Numeric triples are compared first. On a tie a stable version orders after
    a prerelease one, and two prerelease tags are compared as plain strings.

    Args:
        a: Left-hand version
        b: Right-hand version

    Returns:
        LESS, EQUAL or GREATER
    """
    for left, right in ((a.major, b.major), (a.minor, b.minor), (a.patch, b.patch)):
        if left != right:
            return LESS if left < right else GREATER

    if a.prerelease == b.prerelease:
        return EQUAL
    if a.prerelease is None:
        return GREATER
    if b.prerelease is None:
        return LESS
    return LESS if a.prerelease < b.prerelease else GREATER


def versions_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Check whether two version strings denote the same version.

    Args:
        a: First version string
        b: Second version string

    Returns:
        True if both parse and compare equal, False otherwise
    """
    parsed_a = parse_version(a)
    parsed_b = parse_version(b)

    if parsed_a is None or parsed_b is None:
        return False

    return compare(parsed_a, parsed_b) == EQUAL


def has_range_operator(text: str) -> bool:
    """Check whether a specifier contains any range operator character."""
    return any(char in RANGE_OPERATOR_CHARS for char in text)


def is_exact_version(text: Optional[str]) -> bool:
    """Check whether a specifier pins one exact version.

    Text that merely lacks operators but is not a version (``latest``, git
    URLs, ``file:`` paths) is not exact.

    Args:
        text: Version specifier as written in a manifest

    Returns:
        True if the specifier is an exact version pin
    """
    if not text or not isinstance(text, str):
        return False

    if has_range_operator(text):
        return False

    return parse_version(text) is not None


class RangeSpecifier(ABC):
    """A parsed version range."""

    @abstractmethod
    def is_satisfied_by(self, version: Version) -> bool:
        """Check whether a version falls inside this range.

        Args:
            version: Version to test

        Returns:
            True if the version satisfies the range
        """


@dataclass(frozen=True)
class ExactRange(RangeSpecifier):
    """A bare version: matches that version only."""

    version: Version

    def is_satisfied_by(self, version: Version) -> bool:
        return compare(version, self.version) == EQUAL


@dataclass(frozen=True)
class CaretRange(RangeSpecifier):
    """``^x.y.z``: compatible within the left-most non-zero component."""

    version: Version

    def is_satisfied_by(self, version: Version) -> bool:
        floor = self.version

        if version.major != floor.major:
            return False

        if floor.major == 0:
            if version.minor != floor.minor:
                return False
            if floor.minor == 0:
                return version.patch >= floor.patch

        return compare(version, floor) >= EQUAL


@dataclass(frozen=True)
class TildeRange(RangeSpecifier):
    """``~x.y.z``: patch-level changes only."""

    version: Version

    def is_satisfied_by(self, version: Version) -> bool:
        floor = self.version
        return (
            version.major == floor.major
            and version.minor == floor.minor
            and version.patch >= floor.patch
        )


_COMPARATORS: Dict[str, Callable[[int], bool]] = {
    ">=": lambda ordering: ordering >= EQUAL,
    "<=": lambda ordering: ordering <= EQUAL,
    ">": lambda ordering: ordering == GREATER,
    "<": lambda ordering: ordering == LESS,
    "=": lambda ordering: ordering == EQUAL,
}

# Two-character operators must be tried before their one-character prefixes.
COMPARATOR_OPERATORS: Tuple[str, ...] = (">=", "<=", ">", "<", "=")


@dataclass(frozen=True)
class ComparatorRange(RangeSpecifier):
    """``>=``, ``<=``, ``>``, ``<`` or ``=`` applied to one version."""

    operator: str
    version: Version

    def __post_init__(self) -> None:
        """Validate the operator."""
        if self.operator not in _COMPARATORS:
            raise ValueError(f"Unknown comparator: {self.operator}")

    def is_satisfied_by(self, version: Version) -> bool:
        return _COMPARATORS[self.operator](compare(version, self.version))


@dataclass(frozen=True)
class WildcardRange(RangeSpecifier):
    """``*`` or ``x``: any version."""

    def is_satisfied_by(self, version: Version) -> bool:
        return True


@dataclass(frozen=True)
class PartialWildcardRange(RangeSpecifier):
    """``1.x`` / ``1.*`` (any minor) or ``1.2.x`` / ``1.2.*`` (any patch)."""

    major: int
    minor: Optional[int] = None

    def is_satisfied_by(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        return self.minor is None or version.minor == self.minor


@dataclass(frozen=True)
class UnparseableRange(RangeSpecifier):
    """A specifier matching no known grammar. Never satisfied."""

    text: str

    def is_satisfied_by(self, version: Version) -> bool:
        return False


def _parse_operand(text: str) -> Optional[Version]:
    """Parse the version that follows a range operator.

    Unlike ``parse_version`` the whole operand must be a version, so compound
    or malformed ranges such as ``>=1.0.0 <2.0.0 <<bad`` do not silently
    degrade to their first comparator.
    """
    operand = text.strip()
    if not _OPERAND_PATTERN.fullmatch(operand):
        return None
    return parse_version(operand)


def _operand_range(
    range_class: Type[RangeSpecifier],
    operand: str,
    original: str,
) -> RangeSpecifier:
    version = _parse_operand(operand)
    if version is None:
        return UnparseableRange(original)
    return range_class(version)


def parse_range(text: Optional[str]) -> RangeSpecifier:
    """Parse a specifier into a RangeSpecifier.

    Variants are tried in a fixed order and the first match wins: bare
    version, caret, tilde, comparators (``>=``, ``<=``, ``>``, ``<``, ``=``),
    full wildcard, partial wildcard.

    Args:
        text: Version specifier as written in a manifest

    Returns:
        The parsed range, or UnparseableRange
    """
    if not text or not isinstance(text, str):
        return UnparseableRange(text if isinstance(text, str) else "")

    if not has_range_operator(text):
        version = parse_version(text)
        return ExactRange(version) if version else UnparseableRange(text)

    if text.startswith("^"):
        return _operand_range(CaretRange, text[1:], text)

    if text.startswith("~"):
        return _operand_range(TildeRange, text[1:], text)

    for operator in COMPARATOR_OPERATORS:
        if text.startswith(operator):
            version = _parse_operand(text[len(operator):])
            if version is None:
                return UnparseableRange(text)
            return ComparatorRange(operator, version)

    if text in ("*", "x"):
        return WildcardRange()

    match = _PARTIAL_WILDCARD_PATTERN.fullmatch(text)
    if match:
        minor = int(match.group(3)) if match.group(3) is not None else None
        return PartialWildcardRange(major=int(match.group(1)), minor=minor)

    return UnparseableRange(text)


def satisfies(version: Version, specifier: Optional[str]) -> bool:
    """Check whether a version satisfies a specifier string.

    Args:
        version: Parsed version to test
        specifier: Range specifier text

    Returns:
        True if the version is inside the range; unparseable ranges are never
        satisfied
    """
    return parse_range(specifier).is_satisfied_by(version)
