"""IoC list sources for IoCShield."""

from .offline import load_ioc_file
from .online import DEFAULT_IOC_URL, IoCOnlineClient, fetch_ioc_table
from .rows import build_ioc_table, parse_ioc_csv

__all__ = [
    "DEFAULT_IOC_URL",
    "IoCOnlineClient",
    "build_ioc_table",
    "fetch_ioc_table",
    "load_ioc_file",
    "parse_ioc_csv",
]
