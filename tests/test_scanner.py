"""Tests for file discovery and single-project scans."""

import json

import pytest

from ioc_shield.core.matcher import Severity
from ioc_shield.scanner import ProjectScanner, scan_project
from ioc_shield.utils.path_utils import (
    DependencyFileFinder,
    PathFilter,
    find_dependency_files,
    sanitize_path_for_filename,
)


class TestDependencyFileFinder:
    """Test manifest and lockfile discovery."""

    def test_finds_and_sorts(self, tmp_path, json_file):
        """Test discovery across nested packages."""
        json_file(tmp_path / "package.json", {})
        json_file(tmp_path / "packages" / "b" / "package.json", {})
        json_file(tmp_path / "packages" / "a" / "package.json", {})
        (tmp_path / "yarn.lock").write_text("")
        json_file(tmp_path / "npm-shrinkwrap.json", {})
        (tmp_path / "README.md").write_text("")

        found = find_dependency_files(tmp_path)

        assert [f.path.relative_to(tmp_path).as_posix() for f in found.manifests] == [
            "package.json",
            "packages/a/package.json",
            "packages/b/package.json",
        ]
        assert sorted(f.path.name for f in found.lockfiles) == ["npm-shrinkwrap.json", "yarn.lock"]

    def test_prunes_node_modules_and_git(self, tmp_path, json_file):
        """Test node_modules and .git are never descended into."""
        json_file(tmp_path / "package.json", {})
        json_file(tmp_path / "node_modules" / "lodash" / "package.json", {})
        json_file(tmp_path / ".git" / "package.json", {})

        found = find_dependency_files(tmp_path)
        assert len(found.manifests) == 1

    def test_ignore_patterns(self, tmp_path, json_file):
        """Test extra ignore globs prune directories."""
        json_file(tmp_path / "package.json", {})
        json_file(tmp_path / "fixtures" / "package.json", {})
        json_file(tmp_path / "examples" / "demo" / "package.json", {})

        found = find_dependency_files(tmp_path, ["fixtures", "examples/*"])
        assert [f.path for f in found.manifests] == [tmp_path / "package.json"]

    def test_pnpm_is_unsupported(self, tmp_path):
        """Test pnpm lockfiles are discovered but flagged unsupported."""
        (tmp_path / "pnpm-lock.yaml").write_text("lockfileVersion: '6.0'\n")

        found = find_dependency_files(tmp_path)

        assert [f.path.name for f in found.unsupported_lockfiles] == ["pnpm-lock.yaml"]
        assert found.supported_lockfiles == []

    def test_supported_files(self):
        """Test only file names with a parser are listed as supported."""
        supported = DependencyFileFinder().get_supported_files()

        assert "package.json" in supported
        assert "npm-shrinkwrap.json" in supported
        assert "yarn.lock" in supported
        assert "pnpm-lock.yaml" not in supported

    def test_not_a_directory(self, tmp_path):
        """Test a missing root raises."""
        with pytest.raises(NotADirectoryError):
            DependencyFileFinder().find(tmp_path / "missing")

    def test_path_filter(self):
        """Test matching against name and relative path."""
        path_filter = PathFilter(["dist", "vendor/*"])

        assert path_filter.is_ignored("a/b/dist")
        assert path_filter.is_ignored("vendor/lib")
        assert not path_filter.is_ignored("src/lib")


class TestSanitizePath:
    """Test turning project paths into file names."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/home/me/project", "home-me-project"),
            ("C:\\work\\app", "C:-work-app"),
            ("/srv/my app/", "srv-my_app"),
            ("/", "root"),
            ("", "root"),
        ],
    )
    def test_sanitize(self, path, expected):
        """Test separators and spaces are replaced."""
        assert sanitize_path_for_filename(path) == expected


class TestProjectScanner:
    """Test end-to-end project scans."""

    def test_vulnerable_project(self, vulnerable_project, ioc_table):
        """Test every severity is detected and deduplicated."""
        result = ProjectScanner(ioc_table).scan(vulnerable_project)

        assert result.manifests_scanned == 1
        assert result.lockfiles_scanned == 1
        assert result.packages_checked == 7
        assert result.ioc_count == 3
        assert result.ioc_versions == 6
        assert result.has_findings

        keys = [(f.package_name, f.version, f.severity) for f in result.findings]
        assert keys == [
            ("lodash", "4.17.19", Severity.DIRECT),
            ("@zapier/ai-actions", "0.1.18", Severity.POTENTIAL),
            ("@zapier/ai-actions", "0.1.19", Severity.POTENTIAL),
            ("@zapier/ai-actions", "0.1.20", Severity.POTENTIAL),
            ("lodash", "4.17.19", Severity.TRANSITIVE),
            ("left-pad", "1.3.0", Severity.TRANSITIVE),
        ]

        groups = result.by_severity()
        assert len(groups[Severity.DIRECT]) == 1
        assert len(groups[Severity.TRANSITIVE]) == 2
        assert len(groups[Severity.POTENTIAL]) == 3

    def test_clean_project(self, clean_project, ioc_table):
        """Test a project with no compromised dependencies."""
        result = scan_project(clean_project, ioc_table)

        assert not result.has_findings
        assert result.packages_checked == 4

    def test_lockfile_only(self, vulnerable_project, ioc_table):
        """Test manifests are skipped in lockfile-only mode."""
        result = ProjectScanner(ioc_table, lockfile_only=True).scan(vulnerable_project)

        assert result.manifests_scanned == 0
        assert {f.severity for f in result.findings} == {Severity.TRANSITIVE}

    def test_duplicate_findings_across_files(self, tmp_path, ioc_table, json_file):
        """Test the same finding in two lockfiles is reported once."""
        for sub in ("a", "b"):
            json_file(tmp_path / sub / "package-lock.json", {
                "lockfileVersion": 2,
                "packages": {"node_modules/lodash": {"version": "4.17.20"}},
            })

        result = ProjectScanner(ioc_table).scan(tmp_path)

        assert result.lockfiles_scanned == 2
        assert len(result.findings) == 1
        assert result.findings[0].source_location == str(tmp_path / "a" / "package-lock.json")

    def test_malformed_file_is_skipped(self, vulnerable_project, ioc_table):
        """Test a broken manifest does not abort the scan."""
        broken = vulnerable_project / "sub" / "package.json"
        broken.parent.mkdir()
        broken.write_text("{ broken")

        result = ProjectScanner(ioc_table).scan(vulnerable_project)

        assert str(broken) in result.skipped_files
        assert result.manifests_scanned == 1
        assert result.has_findings

    def test_pnpm_recorded_as_skipped(self, tmp_path, ioc_table):
        """Test unsupported lockfiles are listed as skipped."""
        (tmp_path / "pnpm-lock.yaml").write_text("")

        result = ProjectScanner(ioc_table).scan(tmp_path)

        assert result.skipped_files == [str(tmp_path / "pnpm-lock.yaml")]
        assert result.lockfiles_scanned == 0

    def test_to_dict(self, vulnerable_project, ioc_table):
        """Test the JSON report shape."""
        data = ProjectScanner(ioc_table).scan(vulnerable_project).to_dict()

        assert data["iocCount"] == 3
        assert data["manifestsScanned"] == 1
        assert data["lockfilesScanned"] == 1
        assert data["packagesChecked"] == 7
        assert data["timestamp"]
        assert len(data["matches"]) == 6
        potential = [m for m in data["matches"] if m["severity"] == "POTENTIAL"]
        assert all(m["declaredSpec"] == "^0.1.0" for m in potential)
        assert all("declaredSpec" not in m for m in data["matches"] if m["severity"] != "POTENTIAL")
        json.dumps(data)

    def test_not_a_directory(self, tmp_path, ioc_table):
        """Test scanning a missing path raises."""
        with pytest.raises(NotADirectoryError):
            ProjectScanner(ioc_table).scan(tmp_path / "missing")
