"""Immutable lookup table of compromised package versions."""

import re
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

# Separator between alternative versions inside one IoC cell.
VERSION_SEPARATOR = "||"

_EQUALS_PREFIX = re.compile(r"^=\s*")


def split_version_cell(cell: str) -> List[str]:
    """Split one IoC version cell into individual version strings.

    ``"= 0.1.18 || = 0.1.19"`` becomes ``["0.1.18", "0.1.19"]``. Empty tokens
    are dropped.

    Args:
        cell: Raw version cell text

    Returns:
        Version strings in the order they appear
    """
    versions = []

    for token in cell.split(VERSION_SEPARATOR):
        token = _EQUALS_PREFIX.sub("", token.strip()).strip()
        if token:
            versions.append(token)

    return versions


class IoCTable:
    """Read-only mapping from package name to compromised versions.

    Built once per scan and safe to share between threads: nothing mutates it
    after construction.
    """

    def __init__(self, entries: Mapping[str, Tuple[str, ...]]) -> None:
        self._entries: Mapping[str, Tuple[str, ...]] = MappingProxyType(dict(entries))

    @classmethod
    def build(cls, rows: Iterable[Tuple[str, str]]) -> "IoCTable":
        """Build a table from raw ``(package_name, version_cell)`` rows.

        Versions for a package listed on several rows accumulate in row order.
        Rows with an empty name or no versions are discarded.

        Args:
            rows: Raw IoC rows

        Returns:
            A new table, possibly empty
        """
        accumulated: Dict[str, List[str]] = {}

        for name, cell in rows:
            name = (name or "").strip()
            versions = split_version_cell(cell or "")
            if not name or not versions:
                continue
            accumulated.setdefault(name, []).extend(versions)

        return cls({name: tuple(versions) for name, versions in accumulated.items()})

    @classmethod
    def empty(cls) -> "IoCTable":
        """Return a table with no entries."""
        return cls({})

    def lookup(self, package_name: str) -> Tuple[str, ...]:
        """Return the compromised versions of a package.

        Names are matched verbatim, including case and scope.
        """
        return self._entries.get(package_name, ())

    def count(self) -> int:
        """Number of distinct package names."""
        return len(self._entries)

    def size(self) -> int:
        """Total number of version entries across all packages."""
        return sum(len(versions) for versions in self._entries.values())

    def packages(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, package_name: object) -> bool:
        return package_name in self._entries

    def __iter__(self) -> Iterator[Tuple[str, Tuple[str, ...]]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"IoCTable(packages={self.count()}, versions={self.size()})"
