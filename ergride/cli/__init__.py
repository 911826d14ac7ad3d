"""Command-line interface for ergride."""

from ._main import main

__all__ = ["main"]
