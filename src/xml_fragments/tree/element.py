"""Captured elements and the fragments built from them.

An Element is a type-erased capture of one XML element: its tag, raw inner
markup, direct character data and comment text. It can be decoded later into
any destination type with ``Element.unmarshal`` without reading the source
document again.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Type, TypeVar

from ..tokenization.encoding import encode_attrs, encode_end, encode_start, escape_text
from ..tokenization.tokens import Attr, EndElement, Name, StartElement
from .binding import (
    unmarshal,
    xml_attrs,
    xml_comment,
    xml_inner,
    xml_name,
    xml_text,
)

if TYPE_CHECKING:
    from ..tokenization.decoder import Decoder

T = TypeVar("T")


@dataclass(frozen=True)
class Element:
    """Generic capture of an XML element.

    For an element holding only text, ``inner_xml`` and ``chardata`` carry
    the same text (``inner_xml`` escaped, ``chardata`` unescaped).

    ``inner_xml`` is re-serialized by lxml rather than copied from the
    source: empty elements are written as ``<e/>``, CDATA sections become
    escaped text and every child repeats the namespace declarations in
    scope. The markup decodes to the same content as the original.
    """

    name: Name = xml_name(default=Name(""))
    attrs: Tuple[Attr, ...] = xml_attrs(default=())
    inner_xml: str = xml_inner(default="")
    chardata: str = xml_text(default="")
    comment: str = xml_comment(default="")

    def start(self) -> StartElement:
        """Start tag rebuilt from the captured name and attributes."""
        return StartElement(name=self.name, attrs=self.attrs)

    def end(self) -> EndElement:
        """Matching end tag."""
        return EndElement(name=self.name)

    def get(self, local: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value of the first attribute with the given local name."""
        return self.start().get(local, default)

    def to_xml(self) -> str:
        """Rebuild a standalone XML document for this element.

        Character data is only replayed when there is no inner markup: inner
        markup already contains the element's own text, so adding it again
        would duplicate it.
        """
        content = self.inner_xml or escape_text(self.chardata)
        return f"{encode_start(self.start())}{content}{encode_end(self.end())}"

    def unmarshal(self, destination: Type[T]) -> T:
        """Decode this element into a new instance of ``destination``.

        ``destination`` is a dataclass type using the bindings from
        ``xml_fragments.tree.binding``.
        """
        return unmarshal(self.to_xml(), destination)

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation suitable for JSON output."""
        return {
            "name": self.name.clark(),
            "attrs": encode_attrs(self.attrs),
            "inner_xml": self.inner_xml,
            "chardata": self.chardata,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class Fragment:
    """One body element with the root and headers in scope when it closed."""

    root: StartElement
    headers: Tuple[Element, ...]
    body: Element

    def header(self, local: str) -> Optional[Element]:
        """Return the most recent header with the given local name."""
        for element in reversed(self.headers):
            if element.name.local == local:
                return element
        return None

    def headers_named(self, local: str) -> Tuple[Element, ...]:
        """Return all headers with the given local name, in document order."""
        return tuple(element for element in self.headers if element.name.local == local)

    def to_dict(self) -> Dict[str, Any]:
        """Plain representation suitable for JSON output."""
        return {
            "root": {"name": self.root.name.clark(), "attrs": encode_attrs(self.root.attrs)},
            "headers": [element.to_dict() for element in self.headers],
            "body": self.body.to_dict(),
        }


def capture_element(decoder: "Decoder", start: StartElement) -> Element:
    """Decode the subtree of ``start`` into a generic Element.

    Name and attributes are taken from ``start`` itself rather than from the
    decoded value.
    """
    captured = decoder.decode_element(Element, start)
    return Element(
        name=start.name,
        attrs=tuple(start.attrs),
        inner_xml=captured.inner_xml,
        chardata=captured.chardata,
        comment=captured.comment,
    )
