"""Tests for manifest and lockfile parsers."""

import json

import pytest

from ioc_shield.core.parsers import registry
from ioc_shield.core.parsers.base import DependencyKind, DependencyRecord, OriginType, ParsedDependencies
from ioc_shield.core.parsers.nodejs import (
    PackageJsonParser,
    PackageLockParser,
    YarnLockParser,
    package_name_from_descriptor,
    package_name_from_lock_path,
)
from ioc_shield.exceptions import ManifestParseError


@pytest.fixture
def temp_package_json(tmp_path):
    """Create a temporary package.json file."""
    package_file = tmp_path / "package.json"
    package_file.write_text('''{
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "lodash": "^4.17.19",
            "@Scope/Express": " ~4.17.1 "
        },
        "devDependencies": {
            "jest": "27.0.0"
        },
        "peerDependencies": {
            "react": ">=17.0.0"
        },
        "optionalDependencies": {
            "fsevents": "2.3.2"
        },
        "bundledDependencies": ["lodash"]
    }''')
    return package_file


YARN_CLASSIC = '''# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.
# yarn lockfile v1


"@babel/core@^7.0.0", "@babel/core@^7.1.0":
  version "7.12.3"
  resolved "https://registry.yarnpkg.com/@babel/core/-/core-7.12.3.tgz"
  dependencies:
    lodash "^4.17.19"

lodash@^4.17.19:
  version "4.17.20"
  resolved "https://registry.yarnpkg.com/lodash/-/lodash-4.17.20.tgz"
'''

YARN_BERRY = '''# This file is generated by running "yarn install" inside your project.

__metadata:
  version: 6
  cacheKey: 8

"@zapier/ai-actions@npm:^0.1.18":
  version: 0.1.19
  resolution: "@zapier/ai-actions@npm:0.1.19"

"left-pad@npm:1.3.0, left-pad@npm:^1.2.0":
  version: 1.3.0
  resolution: "left-pad@npm:1.3.0"
'''


class TestDependencyRecord:
    """Test the normalized record model."""

    def test_empty_name_rejected(self):
        """Test that a record needs a name."""
        with pytest.raises(ValueError):
            DependencyRecord("", "1.0.0", DependencyKind.DECLARED, OriginType.DEPENDENCIES, "x")

    def test_parsed_dependencies_helpers(self):
        """Test container helpers."""
        result = ParsedDependencies()
        result.add_record(DependencyRecord("a", "1.0.0", DependencyKind.DECLARED, OriginType.DEPENDENCIES, "x"))
        result.add_record(DependencyRecord("a", "^1.0.0", DependencyKind.DECLARED, OriginType.DEV_DEPENDENCIES, "x"))
        result.add_record(DependencyRecord("b", "2.0.0", DependencyKind.DECLARED, OriginType.DEPENDENCIES, "x"))

        assert len(result) == 3
        assert result.get_package_names() == ["a", "b"]
        assert result.find_record("a").version_text == "1.0.0"
        assert result.find_record("c") is None
        assert len(result.filter_by_origin(OriginType.DEPENDENCIES)) == 2


class TestPackageJsonParser:
    """Test package.json parser."""

    def test_can_parse_package_json(self, temp_package_json):
        """Test that parser can identify package.json files."""
        parser = PackageJsonParser()
        assert parser.can_parse(temp_package_json)
        assert not parser.can_parse(temp_package_json.with_name("package-lock.json"))

    def test_parse_package_json(self, temp_package_json):
        """Test parsing every dependency section."""
        result = PackageJsonParser().parse(temp_package_json)

        assert isinstance(result, ParsedDependencies)
        assert result.parser_type == "package"
        assert len(result.records) == 6
        assert all(r.kind is DependencyKind.DECLARED for r in result.records)
        assert all(r.source_location == str(temp_package_json) for r in result.records)

        origins = {(r.name, r.origin_type) for r in result.records}
        assert ("lodash", OriginType.DEPENDENCIES) in origins
        assert ("jest", OriginType.DEV_DEPENDENCIES) in origins
        assert ("react", OriginType.PEER_DEPENDENCIES) in origins
        assert ("fsevents", OriginType.OPTIONAL_DEPENDENCIES) in origins
        assert ("lodash", OriginType.BUNDLED_DEPENDENCIES) in origins

    def test_names_verbatim_and_specifiers_stripped(self, temp_package_json):
        """Test that names keep case and scope and specifiers are trimmed."""
        result = PackageJsonParser().parse(temp_package_json)
        record = result.find_record("@Scope/Express")

        assert record is not None
        assert record.version_text == "~4.17.1"

    def test_bundled_records_have_no_version(self, temp_package_json):
        """Test bundled dependencies carry an empty version."""
        result = PackageJsonParser().parse(temp_package_json)
        bundled = result.filter_by_origin(OriginType.BUNDLED_DEPENDENCIES)

        assert [r.version_text for r in bundled] == [""]

    def test_bundle_dependencies_alias(self, tmp_path):
        """Test the bundleDependencies spelling."""
        package_file = tmp_path / "package.json"
        package_file.write_text(json.dumps({"bundleDependencies": ["a", "b"]}))

        result = PackageJsonParser().parse(package_file)
        assert [r.name for r in result.records] == ["a", "b"]

    def test_non_string_specifier_skipped(self, tmp_path):
        """Test that object or numeric specifiers are skipped."""
        package_file = tmp_path / "package.json"
        package_file.write_text(json.dumps({"dependencies": {"a": {"version": "1"}, "b": 1, "c": "1.0.0"}}))

        result = PackageJsonParser().parse(package_file)
        assert [r.name for r in result.records] == ["c"]

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises ManifestParseError."""
        package_file = tmp_path / "package.json"
        package_file.write_text("{ not json")

        with pytest.raises(ManifestParseError):
            PackageJsonParser().parse(package_file)

    def test_non_object_json(self, tmp_path):
        """Test a JSON array is rejected."""
        package_file = tmp_path / "package.json"
        package_file.write_text("[]")

        with pytest.raises(ManifestParseError):
            PackageJsonParser().parse(package_file)

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ManifestParseError."""
        with pytest.raises(ManifestParseError):
            PackageJsonParser().parse(tmp_path / "package.json")


class TestPackageLockParser:
    """Test package-lock.json parser."""

    def test_lock_path_names(self):
        """Test package names derived from packages-map keys."""
        assert package_name_from_lock_path("node_modules/lodash", {}) == "lodash"
        assert package_name_from_lock_path("node_modules/@s/pkg", {}) == "@s/pkg"
        assert package_name_from_lock_path("node_modules/a/node_modules/@s/b", {}) == "@s/b"
        assert package_name_from_lock_path("packages/app", {"name": "app"}) == "app"
        assert package_name_from_lock_path("packages/app", {}) is None

    def test_parse_v2_packages(self, tmp_path):
        """Test the flat packages map of lockfile v2/v3."""
        lock_file = tmp_path / "package-lock.json"
        lock_file.write_text(json.dumps({
            "lockfileVersion": 3,
            "packages": {
                "": {"name": "root", "version": "1.0.0"},
                "node_modules/lodash": {"version": "4.17.19"},
                "node_modules/express/node_modules/@scope/dep": {"version": "1.0.0"},
                "node_modules/linked": {"link": True},
                "packages/workspace": {"name": "ws", "version": "0.1.0"},
            },
            "dependencies": {"ignored": {"version": "9.9.9"}},
        }))

        result = PackageLockParser().parse(lock_file)

        assert [(r.name, r.version_text) for r in result.records] == [
            ("lodash", "4.17.19"),
            ("@scope/dep", "1.0.0"),
            ("ws", "0.1.0"),
        ]
        assert all(r.kind is DependencyKind.RESOLVED for r in result.records)
        assert all(r.origin_type is OriginType.PACKAGE_LOCK for r in result.records)
        assert result.metadata["lockfileVersion"] == 3

    def test_parse_v1_nested_dependencies(self, tmp_path):
        """Test recursive flattening of lockfile v1."""
        lock_file = tmp_path / "package-lock.json"
        lock_file.write_text(json.dumps({
            "lockfileVersion": 1,
            "dependencies": {
                "express": {
                    "version": "4.17.1",
                    "dependencies": {
                        "left-pad": {
                            "version": "1.3.0",
                            "dependencies": {"deep": {"version": "0.0.1"}},
                        }
                    },
                },
                "lodash": {"version": "4.17.20"},
            },
        }))

        result = PackageLockParser().parse(lock_file)

        assert [(r.name, r.version_text) for r in result.records] == [
            ("express", "4.17.1"),
            ("left-pad", "1.3.0"),
            ("deep", "0.0.1"),
            ("lodash", "4.17.20"),
        ]

    def test_shrinkwrap_is_handled(self, tmp_path):
        """Test npm-shrinkwrap.json uses the same parser."""
        assert PackageLockParser().can_parse(tmp_path / "npm-shrinkwrap.json")

    def test_invalid_json(self, tmp_path):
        """Test malformed lockfiles raise ManifestParseError."""
        lock_file = tmp_path / "package-lock.json"
        lock_file.write_text('{"packages": ')

        with pytest.raises(ManifestParseError):
            PackageLockParser().parse(lock_file)


class TestYarnLockParser:
    """Test yarn.lock parser."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("lodash@^4.17.19:", "lodash"),
            ('"@babel/core@^7.0.0", "@babel/core@^7.1.0":', "@babel/core"),
            ('"@zapier/ai-actions@npm:^0.1.18":', "@zapier/ai-actions"),
            ("left-pad@npm:1.3.0, left-pad@npm:^1.2.0:", "left-pad"),
            ('"string-width-cjs@npm:string-width@^4.2.0":', "string-width"),
            ('"ai-actions@npm:@zapier/ai-actions@0.1.19":', "@zapier/ai-actions"),
            ("@scope:", None),
        ],
    )
    def test_descriptor_names(self, header, expected):
        """Test name extraction from block headers."""
        assert package_name_from_descriptor(header) == expected

    def test_parse_classic(self, tmp_path):
        """Test yarn v1 lockfiles."""
        lock_file = tmp_path / "yarn.lock"
        lock_file.write_text(YARN_CLASSIC)

        result = YarnLockParser().parse(lock_file)

        assert [(r.name, r.version_text) for r in result.records] == [
            ("@babel/core", "7.12.3"),
            ("lodash", "4.17.20"),
        ]
        assert all(r.origin_type is OriginType.YARN_LOCK for r in result.records)

    def test_parse_berry(self, tmp_path):
        """Test yarn v2+ lockfiles, skipping __metadata."""
        lock_file = tmp_path / "yarn.lock"
        lock_file.write_text(YARN_BERRY)

        result = YarnLockParser().parse(lock_file)

        assert [(r.name, r.version_text) for r in result.records] == [
            ("@zapier/ai-actions", "0.1.19"),
            ("left-pad", "1.3.0"),
        ]

    def test_parse_alias(self, tmp_path):
        """Test an aliased block is recorded under the real package name."""
        lock_file = tmp_path / "yarn.lock"
        lock_file.write_text(
            '"string-width-cjs@npm:string-width@^4.2.0":\n'
            '  version "4.2.3"\n'
        )

        result = YarnLockParser().parse(lock_file)

        assert [(r.name, r.version_text) for r in result.records] == [("string-width", "4.2.3")]

    def test_block_without_version(self, tmp_path):
        """Test blocks lacking a version line are skipped."""
        lock_file = tmp_path / "yarn.lock"
        lock_file.write_text('foo@^1.0.0:\n  resolved "x"\n\nbar@1.0.0:\n  version "1.0.0"\n')

        result = YarnLockParser().parse(lock_file)
        assert [r.name for r in result.records] == ["bar"]


class TestParserRegistry:
    """Test the default parser registry."""

    def test_find_parser_for_file(self, tmp_path):
        """Test dispatch by file name."""
        assert isinstance(registry.find_parser_for_file(tmp_path / "package.json"), PackageJsonParser)
        assert isinstance(registry.find_parser_for_file(tmp_path / "package-lock.json"), PackageLockParser)
        assert isinstance(registry.find_parser_for_file(tmp_path / "yarn.lock"), YarnLockParser)
        assert registry.find_parser_for_file(tmp_path / "pnpm-lock.yaml") is None

    def test_parse_file(self, temp_package_json, tmp_path):
        """Test parse_file returns None for unknown files."""
        assert registry.parse_file(temp_package_json) is not None
        other = tmp_path / "README.md"
        other.write_text("hi")
        assert registry.parse_file(other) is None

    def test_supported_listing(self):
        """Test registry introspection."""
        assert registry.get_supported_parser_types() == ["package", "package-lock", "yarn"]
        assert "npm-shrinkwrap.json" in registry.get_supported_file_names()
        assert registry.get_parser("yarn") is not None
