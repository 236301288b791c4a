"""Loading the IoC list from a local CSV file."""

from pathlib import Path

from ..core.ioc_table import IoCTable
from ..exceptions import IoCSourceError
from ..utils.logging import get_logger
from .rows import build_ioc_table

logger = get_logger("IoCOffline")


def load_ioc_file(path: Path) -> IoCTable:
    """Read a local IoC CSV and build the table.

    Args:
        path: CSV file in the same format as the published list

    Returns:
        The IoC table

    Raises:
        IoCSourceError: If the file is missing or unreadable
    """
    if not path.is_file():
        raise IoCSourceError(f"IoC file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IoCSourceError(f"Cannot read IoC file {path}: {e}") from e

    table = build_ioc_table(text)
    logger.info(f"Loaded {table.count()} compromised packages ({table.size()} versions) from {path}")
    return table
