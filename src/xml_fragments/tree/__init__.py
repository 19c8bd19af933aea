"""Element capture and typed decoding for XML fragments.

This module provides the captured Element and Fragment value types and the
dataclass bindings used to decode captured elements into caller types.
"""

from .binding import (
    Binding,
    BindingKind,
    decode_node,
    unmarshal,
    xml_attr,
    xml_attrs,
    xml_child,
    xml_comment,
    xml_inner,
    xml_name,
    xml_text,
)
from .element import Element, Fragment, capture_element

__all__ = [
    "Binding",
    "BindingKind",
    "decode_node",
    "unmarshal",
    "xml_attr",
    "xml_attrs",
    "xml_child",
    "xml_comment",
    "xml_inner",
    "xml_name",
    "xml_text",
    "Element",
    "Fragment",
    "capture_element",
]
