"""Utility functions and helpers for IoCShield."""

from .logging import capture_logs, get_logger, setup_logging
from .path_utils import find_dependency_files, sanitize_path_for_filename

__all__ = [
    "capture_logs",
    "find_dependency_files",
    "get_logger",
    "sanitize_path_for_filename",
    "setup_logging",
]
