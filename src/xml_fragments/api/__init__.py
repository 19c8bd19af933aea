"""Public API for XML fragment extraction.

This module provides the fragment parser, convenience functions for common
inputs and tabular export of fragments.
"""

from .adapters import fragment_to_record, fragments_to_dataframe, fragments_to_records
from .parser import (
    FragmentCallback,
    FragmentParser,
    Parser,
    new_parser,
    parse_file,
    parse_fragments,
    parse_string,
)

__all__ = [
    "FragmentCallback",
    "FragmentParser",
    "Parser",
    "new_parser",
    "parse_file",
    "parse_fragments",
    "parse_string",
    "fragment_to_record",
    "fragments_to_dataframe",
    "fragments_to_records",
]
