"""Token sources for streaming XML fragment extraction.

This module provides the XML token types, the Decoder protocol the fragment
parser consumes, the lxml-backed StreamDecoder and helpers to serialize
tokens back to markup.
"""

from .tokens import (
    XML_NAMESPACE,
    Attr,
    CharData,
    Comment,
    EndElement,
    Name,
    ProcInst,
    StartElement,
    Token,
)
from .encoding import (
    encode_attrs,
    encode_end,
    encode_start,
    escape_attr,
    escape_text,
)
from .decoder import Decoder, StreamDecoder

__all__ = [
    "XML_NAMESPACE",
    "Attr",
    "CharData",
    "Comment",
    "EndElement",
    "Name",
    "ProcInst",
    "StartElement",
    "Token",
    "encode_attrs",
    "encode_end",
    "encode_start",
    "escape_attr",
    "escape_text",
    "Decoder",
    "StreamDecoder",
]
