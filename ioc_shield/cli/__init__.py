"""Command-line interface for IoCShield."""
