"""npm manifest and lockfile parsers."""

import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ...utils.logging import get_logger
from .base import BaseParser, DependencyKind, DependencyRecord, OriginType, ParsedDependencies

logger = get_logger("parsers")

NODE_MODULES_MARKER = "node_modules/"


class PackageJsonParser(BaseParser):
    """Parser for package.json manifests."""

    file_names = ["package.json"]
    parser_type = "package"
    kind = DependencyKind.DECLARED

    # Mapping sections produce one record per entry with the declared specifier.
    SECTIONS: List[Tuple[str, OriginType]] = [
        ("dependencies", OriginType.DEPENDENCIES),
        ("devDependencies", OriginType.DEV_DEPENDENCIES),
        ("peerDependencies", OriginType.PEER_DEPENDENCIES),
        ("optionalDependencies", OriginType.OPTIONAL_DEPENDENCIES),
    ]

    BUNDLED_SECTIONS = ("bundledDependencies", "bundleDependencies")

    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a package.json file.

        Args:
            file_path: Path to the package.json file

        Returns:
            Declared records, section by section
        """
        data = self._load_json(file_path)
        result = self._new_result(file_path)
        location = str(file_path)

        for section_name, origin_type in self.SECTIONS:
            section = data.get(section_name)
            if not isinstance(section, dict):
                continue

            for name, specifier in section.items():
                if not isinstance(specifier, str):
                    logger.warning(
                        f"Skipping {name} in {section_name} of {location}: "
                        f"specifier is not a string"
                    )
                    continue

                result.add_record(
                    DependencyRecord(
                        name=name,
                        version_text=specifier.strip(),
                        kind=self.kind,
                        origin_type=origin_type,
                        source_location=location,
                    )
                )

        for name in self._bundled_names(data):
            result.add_record(
                DependencyRecord(
                    name=name,
                    version_text="",
                    kind=self.kind,
                    origin_type=OriginType.BUNDLED_DEPENDENCIES,
                    source_location=location,
                )
            )

        result.metadata["name"] = data.get("name")
        result.metadata["version"] = data.get("version")
        return result

    def _bundled_names(self, data: Dict[str, Any]) -> List[str]:
        for section_name in self.BUNDLED_SECTIONS:
            section = data.get(section_name)
            if isinstance(section, list):
                return [name for name in section if isinstance(name, str) and name]
        return []


def package_name_from_lock_path(path: str, entry: Dict[str, Any]) -> Optional[str]:
    """Derive the package name of a lockfile v2 ``packages`` entry.

    ``node_modules/a/node_modules/@s/b`` is ``@s/b``. Entries outside
    ``node_modules`` (workspace members) use their ``name`` field.

    Args:
        path: Key in the ``packages`` map
        entry: The entry itself

    Returns:
        Package name, or None if it cannot be determined
    """
    index = path.rfind(NODE_MODULES_MARKER)
    if index >= 0:
        name = path[index + len(NODE_MODULES_MARKER):]
        return name or None

    name = entry.get("name")
    return name if isinstance(name, str) and name else None


class PackageLockParser(BaseParser):
    """Parser for package-lock.json and npm-shrinkwrap.json.

    Lockfile v2 and v3 keep a flat path-keyed ``packages`` map; v1 nests
    ``dependencies`` recursively. When both are present the flat map wins.
    """

    file_names = ["package-lock.json", "npm-shrinkwrap.json"]
    parser_type = "package-lock"
    kind = DependencyKind.RESOLVED

    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse an npm lockfile.

        Args:
            file_path: Path to the lockfile

        Returns:
            Resolved records
        """
        data = self._load_json(file_path)
        result = self._new_result(file_path)
        location = str(file_path)

        packages = data.get("packages")
        if isinstance(packages, dict):
            entries = self._flat_entries(packages)
            result.metadata["format"] = "packages"
        else:
            entries = self._nested_entries(data.get("dependencies"))
            result.metadata["format"] = "dependencies"

        for name, version in entries:
            result.add_record(
                DependencyRecord(
                    name=name,
                    version_text=version,
                    kind=self.kind,
                    origin_type=OriginType.PACKAGE_LOCK,
                    source_location=location,
                )
            )

        result.metadata["lockfileVersion"] = data.get("lockfileVersion")
        return result

    def _flat_entries(self, packages: Dict[str, Any]) -> Iterator[Tuple[str, str]]:
        for path, entry in packages.items():
            # The root project
            if path == "" or not isinstance(entry, dict):
                continue

            version = entry.get("version")
            if not isinstance(version, str) or not version:
                continue

            name = package_name_from_lock_path(path, entry)
            if name:
                yield name, version

    def _nested_entries(self, dependencies: Any) -> Iterator[Tuple[str, str]]:
        if not isinstance(dependencies, dict):
            return

        for name, entry in dependencies.items():
            if not isinstance(entry, dict):
                continue

            version = entry.get("version")
            if isinstance(version, str) and version:
                yield name, version

            yield from self._nested_entries(entry.get("dependencies"))


_YARN_VERSION = re.compile(r'^version:?\s+"?([^"\s]+)"?\s*$')


def package_name_from_descriptor(header: str) -> Optional[str]:
    """Extract the package name from a yarn.lock block header.

    ``"@babel/core@^7.0.0", "@babel/core@^7.1.0":`` gives ``@babel/core``.
    Aliases resolve to the installed package, so
    ``string-width-cjs@npm:string-width@^4.2.0`` gives ``string-width``.

    Args:
        header: First line of a yarn.lock block

    Returns:
        Package name, or None if the header has no version part
    """
    header = header.strip().rstrip(":").replace('"', "")
    descriptor = header.split(",")[0].strip()

    _, alias, target = descriptor.partition("@npm:")
    if alias and target.rfind("@") > 0:
        descriptor = target

    at_index = descriptor.rfind("@")
    if at_index <= 0:
        return None

    return descriptor[:at_index]


class YarnLockParser(BaseParser):
    """Parser for yarn.lock, classic (v1) and berry (v2+)."""

    file_names = ["yarn.lock"]
    parser_type = "yarn"
    kind = DependencyKind.RESOLVED

    def parse(self, file_path: Path) -> ParsedDependencies:
        """Parse a yarn.lock file.

        Args:
            file_path: Path to the yarn.lock file

        Returns:
            Resolved records, one per block with a version
        """
        content = self._read_text(file_path)
        result = self._new_result(file_path)
        location = str(file_path)

        for block in self._blocks(content):
            parsed = self._parse_block(block)
            if parsed is None:
                continue

            name, version = parsed
            result.add_record(
                DependencyRecord(
                    name=name,
                    version_text=version,
                    kind=self.kind,
                    origin_type=OriginType.YARN_LOCK,
                    source_location=location,
                )
            )

        return result

    def _blocks(self, content: str) -> Iterator[List[str]]:
        block: List[str] = []
        for line in content.replace("\r\n", "\n").split("\n"):
            if line.strip():
                block.append(line)
            elif block:
                yield block
                block = []
        if block:
            yield block

    def _parse_block(self, lines: List[str]) -> Optional[Tuple[str, str]]:
        """Parse one block into ``(name, version)``.

        Args:
            lines: Non-empty lines of the block

        Returns:
            Name and version, or None for comments, metadata and malformed blocks
        """
        # Leading comment lines share a block with the first entry in classic files
        while lines and lines[0].lstrip().startswith("#"):
            lines = lines[1:]
        if not lines:
            return None

        header = lines[0]
        if header.startswith((" ", "\t")) or header.startswith("__metadata"):
            return None

        name = package_name_from_descriptor(header)
        if not name:
            return None

        for line in lines[1:]:
            match = _YARN_VERSION.match(line.strip())
            if match:
                return name, match.group(1)

        return None
