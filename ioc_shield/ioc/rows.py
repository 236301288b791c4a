"""Reader for the IoC package CSV."""

import csv
from typing import List, Tuple

from ..core.ioc_table import IoCTable
from ..utils.logging import get_logger

logger = get_logger("ioc")


def parse_ioc_csv(text: str) -> List[Tuple[str, str]]:
    """Parse IoC CSV text into raw ``(package_name, version_cell)`` rows.

    The first line is a header and is skipped, as are blank lines. Cells may
    be quoted. Malformed lines are logged and skipped.

    Args:
        text: CSV document

    Returns:
        Rows in file order
    """
    rows = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        if line_number == 1 or not line.strip():
            continue

        try:
            cells = next(csv.reader([line]))
        except csv.Error as e:
            logger.warning(f"Skipping malformed IoC line {line_number}: {e}")
            continue

        if len(cells) < 2:
            logger.warning(f"Skipping IoC line {line_number}: expected 2 columns, got {len(cells)}")
            continue

        name = cells[0].strip()
        cell = cells[1].strip()
        if not name or not cell:
            logger.warning(f"Skipping IoC line {line_number}: empty package name or version")
            continue

        rows.append((name, cell))

    return rows


def build_ioc_table(text: str) -> IoCTable:
    """Parse IoC CSV text and build the lookup table."""
    table = IoCTable.build(parse_ioc_csv(text))
    logger.debug(f"Built IoC table: {table.count()} packages, {table.size()} versions")
    return table
