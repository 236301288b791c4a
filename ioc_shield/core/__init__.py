"""Version matching and classification engine for IoCShield."""

from .ioc_table import IoCTable
from .matcher import Finding, Severity, classify, classify_records, dedupe, match_records
from .parsers import DependencyKind, DependencyRecord, OriginType

__all__ = [
    "DependencyKind",
    "DependencyRecord",
    "Finding",
    "IoCTable",
    "OriginType",
    "Severity",
    "classify",
    "classify_records",
    "dedupe",
    "match_records",
]
