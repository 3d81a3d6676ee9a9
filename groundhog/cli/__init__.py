"""Command line interface for groundhog."""

from groundhog.cli.main import cli, main

__all__ = ["cli", "main"]
