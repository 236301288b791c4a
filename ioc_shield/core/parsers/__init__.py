"""Manifest and lockfile parsers for npm projects."""

from .base import BaseParser, DependencyKind, DependencyRecord, OriginType, ParsedDependencies
from .nodejs import PackageJsonParser, PackageLockParser, YarnLockParser
from .registry import ParserRegistry

# Register built-in parsers
registry = ParserRegistry()
registry.register("package", PackageJsonParser())
registry.register("package-lock", PackageLockParser())
registry.register("yarn", YarnLockParser())

__all__ = [
    "BaseParser",
    "DependencyKind",
    "DependencyRecord",
    "OriginType",
    "PackageJsonParser",
    "PackageLockParser",
    "ParsedDependencies",
    "ParserRegistry",
    "YarnLockParser",
    "registry",
]
