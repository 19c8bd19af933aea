"""Command-line interface for xml-fragments.

Streams fragments out of large XML files as JSON lines or CSV, or reports
scan counts.
"""

from .main import main

__all__ = ["main"]
