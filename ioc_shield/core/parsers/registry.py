"""Registry mapping manifest and lockfile names to parsers."""

from pathlib import Path
from typing import Dict, List, Optional

from .base import BaseParser, ParsedDependencies


class ParserRegistry:
    """Registry for dependency file parsers."""

    def __init__(self) -> None:
        """Initialize the parser registry."""
        self._parsers: Dict[str, BaseParser] = {}

    def register(self, parser_type: str, parser: BaseParser) -> None:
        """Register a parser under a type name.

        Args:
            parser_type: Parser type (e.g., 'package', 'yarn')
            parser: Parser instance to register
        """
        self._parsers[parser_type] = parser

    def get_parser(self, parser_type: str) -> Optional[BaseParser]:
        """Get a parser by type name.

        Args:
            parser_type: Parser type

        Returns:
            Parser instance or None if not found
        """
        return self._parsers.get(parser_type)

    def find_parser_for_file(self, file_path: Path) -> Optional[BaseParser]:
        """Find a parser that can handle the given file.

        Args:
            file_path: Path to the file

        Returns:
            Parser that can handle the file or None
        """
        for parser in self._parsers.values():
            if parser.can_parse(file_path):
                return parser
        return None

    def get_supported_parser_types(self) -> List[str]:
        """Get registered parser type names in registration order."""
        return list(self._parsers)

    def get_supported_file_names(self) -> List[str]:
        """Get every file name some registered parser handles."""
        names: List[str] = []
        for parser in self._parsers.values():
            names.extend(parser.file_names)
        return names

    def parse_file(self, file_path: Path) -> Optional[ParsedDependencies]:
        """Parse a file using the appropriate parser.

        Args:
            file_path: Path to the file to parse

        Returns:
            Parsed records or None if no parser handles the file

        Raises:
            ManifestParseError: If the parser cannot decode the file
        """
        parser = self.find_parser_for_file(file_path)
        if parser:
            return parser.parse(file_path)
        return None
