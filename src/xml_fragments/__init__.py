"""XML fragment extraction for large documents.

Streams a large XML document and emits one fragment per repeated body
element, together with the root start tag and the most recent header
elements that scope it, without holding the document in memory.

Progressive API Disclosure:
- Level 1: Simple functions - parse_string(), parse_file(), parse_fragments()
- Level 2: Configured parser - FragmentParser over any Decoder
- Level 3: Deferred decoding - Element.unmarshal() into dataclass bindings
"""

__version__ = "0.1.0"
__author__ = "xml-fragments contributors"

# Token sources load first: the tree bindings import from this package.
from .tokenization import Decoder, Name, StartElement, StreamDecoder
from .tree import (
    Element,
    Fragment,
    xml_attr,
    xml_attrs,
    xml_child,
    xml_comment,
    xml_inner,
    xml_name,
    xml_text,
)

# Level 1 and Level 2 entry points
from .api import (
    FragmentParser,
    Parser,
    new_parser,
    parse_file,
    parse_fragments,
    parse_string,
)

# Configuration and errors
from .shared import (
    BindingError,
    ConfigError,
    ConfigValidationError,
    DecodeError,
    FragmentConfig,
    FragmentError,
    ScanMetrics,
    StreamConfig,
    UnexpectedEndOfTokenError,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions
    "parse_string",
    "parse_file",
    "parse_fragments",

    # Level 2: Parser and token sources
    "FragmentParser",
    "Parser",
    "new_parser",
    "Decoder",
    "StreamDecoder",

    # Result objects and data structures
    "Element",
    "Fragment",
    "Name",
    "StartElement",
    "ScanMetrics",

    # Level 3: Deferred decoding bindings
    "xml_attr",
    "xml_attrs",
    "xml_child",
    "xml_comment",
    "xml_inner",
    "xml_name",
    "xml_text",

    # Configuration and errors
    "FragmentConfig",
    "StreamConfig",
    "BindingError",
    "ConfigError",
    "ConfigValidationError",
    "DecodeError",
    "FragmentError",
    "UnexpectedEndOfTokenError",
]
