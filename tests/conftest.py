"""Shared fixtures for IoCShield tests."""

import json
import logging

import pytest

from ioc_shield.core.ioc_table import IoCTable

IOC_CSV = (
    "Package,Version\n"
    "lodash,= 4.17.19 || = 4.17.20\n"
    "@zapier/ai-actions,= 0.1.18 || = 0.1.19 || = 0.1.20\n"
    "left-pad,= 1.3.0\n"
)


@pytest.fixture
def ioc_csv_text():
    """Raw IoC CSV with three packages and six versions."""
    return IOC_CSV


@pytest.fixture
def ioc_csv_file(tmp_path):
    """The IoC CSV written to disk."""
    path = tmp_path / "iocs.csv"
    path.write_text(IOC_CSV)
    return path


@pytest.fixture
def ioc_table():
    """IoC table matching ``IOC_CSV``."""
    return IoCTable.build([
        ("lodash", "= 4.17.19 || = 4.17.20"),
        ("@zapier/ai-actions", "= 0.1.18 || = 0.1.19 || = 0.1.20"),
        ("left-pad", "= 1.3.0"),
    ])


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def vulnerable_project(tmp_path):
    """A project with a direct pin, a range and a compromised lockfile entry."""
    project = tmp_path / "vulnerable"
    write_json(project / "package.json", {
        "name": "vulnerable",
        "version": "1.0.0",
        "dependencies": {
            "lodash": "4.17.19",
            "@zapier/ai-actions": "^0.1.0",
            "express": "^4.18.0",
        },
        "devDependencies": {
            "left-pad": "latest",
        },
    })
    write_json(project / "package-lock.json", {
        "name": "vulnerable",
        "lockfileVersion": 3,
        "packages": {
            "": {"name": "vulnerable", "version": "1.0.0"},
            "node_modules/lodash": {"version": "4.17.19"},
            "node_modules/express": {"version": "4.18.2"},
            "node_modules/express/node_modules/left-pad": {"version": "1.3.0"},
        },
    })
    return project


@pytest.fixture
def clean_project(tmp_path):
    """A project that depends on nothing in the IoC list."""
    project = tmp_path / "clean"
    write_json(project / "package.json", {
        "name": "clean",
        "dependencies": {"express": "^4.18.0", "lodash": "4.17.21"},
    })
    write_json(project / "package-lock.json", {
        "lockfileVersion": 2,
        "packages": {
            "": {"name": "clean"},
            "node_modules/express": {"version": "4.18.2"},
            "node_modules/lodash": {"version": "4.17.21"},
        },
    })
    return project


@pytest.fixture
def json_file():
    """Writer for JSON files, creating parent directories."""
    return write_json


@pytest.fixture
def ioc_logger():
    """The ``ioc_shield`` logger at INFO, restored afterwards."""
    logger = logging.getLogger("ioc_shield")
    level, handlers, propagate = logger.level, list(logger.handlers), logger.propagate
    logger.setLevel(logging.INFO)
    yield logger
    logger.setLevel(level)
    logger.handlers[:] = handlers
    logger.propagate = propagate
