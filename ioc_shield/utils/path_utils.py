"""Path utilities for finding npm manifests and lockfiles."""

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

MANIFEST = "manifest"
LOCKFILE = "lockfile"

# Directories never descended into.
ALWAYS_PRUNED = ("node_modules", ".git")


@dataclass
class DependencyFile:
    """A discovered manifest or lockfile."""

    path: Path
    role: str
    parser_type: Optional[str]

    @property
    def is_supported(self) -> bool:
        return self.parser_type is not None


@dataclass
class DiscoveredFiles:
    """Files found under one project root, sorted by path."""

    manifests: List[DependencyFile] = field(default_factory=list)
    lockfiles: List[DependencyFile] = field(default_factory=list)

    @property
    def supported_lockfiles(self) -> List[DependencyFile]:
        return [dep_file for dep_file in self.lockfiles if dep_file.is_supported]

    @property
    def unsupported_lockfiles(self) -> List[DependencyFile]:
        return [dep_file for dep_file in self.lockfiles if not dep_file.is_supported]


class PathFilter:
    """Filters paths based on glob patterns."""

    def __init__(self, ignore_patterns: Optional[List[str]] = None) -> None:
        """Initialize path filter.

        Args:
            ignore_patterns: Glob patterns matched against the file or directory
                name and against its path relative to the scan root
        """
        self.ignore_patterns = list(ignore_patterns or [])

    def is_ignored(self, relative_path: str) -> bool:
        """Check if a path should be ignored.

        Args:
            relative_path: Path relative to the scan root, ``/``-separated

        Returns:
            True if path should be ignored
        """
        name = relative_path.rsplit("/", 1)[-1]

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative_path, pattern):
                return True

        return False


class DependencyFileFinder:
    """Finds npm manifests and lockfiles in a project directory."""

    # File name -> (role, parser type); None marks a known but unsupported dialect.
    DEPENDENCY_PATTERNS: Dict[str, tuple] = {
        "package.json": (MANIFEST, "package"),
        "package-lock.json": (LOCKFILE, "package-lock"),
        "npm-shrinkwrap.json": (LOCKFILE, "package-lock"),
        "yarn.lock": (LOCKFILE, "yarn"),
        "pnpm-lock.yaml": (LOCKFILE, None),
    }

    def __init__(self, ignore_patterns: Optional[List[str]] = None) -> None:
        """Initialize dependency file finder.

        Args:
            ignore_patterns: Additional ignore patterns
        """
        self.path_filter = PathFilter(ignore_patterns)

    def find(self, root_path: Path) -> DiscoveredFiles:
        """Find every manifest and lockfile under a directory.

        Args:
            root_path: Root directory to search

        Returns:
            Discovered files, each list sorted by path

        Raises:
            NotADirectoryError: If root_path is not a directory
        """
        if not root_path.is_dir():
            raise NotADirectoryError(f"Not a directory: {root_path}")

        found = DiscoveredFiles()

        for file_path in self._walk_files(root_path):
            role, parser_type = self.DEPENDENCY_PATTERNS[file_path.name]
            dep_file = DependencyFile(path=file_path, role=role, parser_type=parser_type)
            if role == MANIFEST:
                found.manifests.append(dep_file)
            else:
                found.lockfiles.append(dep_file)

        found.manifests.sort(key=lambda dep_file: str(dep_file.path))
        found.lockfiles.sort(key=lambda dep_file: str(dep_file.path))
        return found

    def _walk_files(self, root_path: Path) -> Iterator[Path]:
        """Walk the tree, pruning ignored directories.

        Args:
            root_path: Root directory to walk

        Yields:
            Paths of recognized dependency files
        """
        for dirpath, dirnames, filenames in os.walk(root_path):
            relative_dir = os.path.relpath(dirpath, root_path).replace(os.sep, "/")
            prefix = "" if relative_dir == "." else f"{relative_dir}/"

            dirnames[:] = [
                name for name in dirnames
                if name not in ALWAYS_PRUNED and not self.path_filter.is_ignored(prefix + name)
            ]

            for filename in filenames:
                if filename not in self.DEPENDENCY_PATTERNS:
                    continue
                if self.path_filter.is_ignored(prefix + filename):
                    continue
                yield Path(dirpath) / filename

    def get_supported_files(self) -> List[str]:
        """File names that are parsed."""
        return [name for name, (_, parser_type) in self.DEPENDENCY_PATTERNS.items() if parser_type]


def find_dependency_files(
    root_path: Path,
    ignore_patterns: Optional[List[str]] = None
) -> DiscoveredFiles:
    """Convenience function to find dependency files.

    Args:
        root_path: Root directory to search
        ignore_patterns: Additional ignore patterns

    Returns:
        Discovered manifests and lockfiles
    """
    finder = DependencyFileFinder(ignore_patterns)
    return finder.find(root_path)


def sanitize_path_for_filename(path: str) -> str:
    """Turn a project path into a safe file name stem.

    ``/home/me/my app`` becomes ``home-me-my_app``; an empty result is
    ``root``.
    """
    sanitized = path.replace("/", "-").replace("\\", "-").replace(" ", "_").strip("-")
    return sanitized or "root"
