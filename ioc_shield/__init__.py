"""IoCShield - scan npm projects for dependencies on compromised package versions."""

__version__ = "0.1.0"

from .core.ioc_table import IoCTable
from .core.matcher import Finding, Severity, classify, dedupe
from .ioc import IoCOnlineClient, fetch_ioc_table, load_ioc_file
from .scanner import ProjectScanner, ScanResult

__all__ = [
    "Finding",
    "IoCOnlineClient",
    "IoCTable",
    "ProjectScanner",
    "ScanResult",
    "Severity",
    "classify",
    "dedupe",
    "fetch_ioc_table",
    "load_ioc_file",
]
