"""XML token types produced by token sources.

Tokens are small immutable values. A token source yields them in document
order: start tags, end tags, character data, comments and processing
instructions.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


@dataclass(frozen=True)
class Name:
    """Namespace-qualified XML name.

    ``space`` holds the namespace URI (not the prefix) or ``""``.
    """

    local: str
    space: str = ""

    @classmethod
    def from_clark(cls, tag: str) -> "Name":
        """Build a name from lxml's ``{uri}local`` notation."""
        if tag.startswith("{"):
            space, _, local = tag[1:].partition("}")
            return cls(local=local, space=space)
        return cls(local=tag)

    def clark(self) -> str:
        """Return the name in ``{uri}local`` notation."""
        return f"{{{self.space}}}{self.local}" if self.space else self.local

    def __str__(self) -> str:
        return self.clark()


@dataclass(frozen=True)
class Attr:
    """Attribute of a start tag."""

    name: Name
    value: str


@dataclass(frozen=True)
class StartElement:
    """Start tag with its attributes in document order."""

    name: Name
    attrs: Tuple[Attr, ...] = ()

    def copy(self) -> "StartElement":
        """Return an equal, independent start tag."""
        return StartElement(name=self.name, attrs=tuple(self.attrs))

    def end(self) -> "EndElement":
        """Return the matching end tag."""
        return EndElement(name=self.name)

    def get(self, local: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value of the first attribute with the given local name."""
        for attr in self.attrs:
            if attr.name.local == local:
                return attr.value
        return default


@dataclass(frozen=True)
class EndElement:
    """End tag."""

    name: Name


@dataclass(frozen=True)
class CharData:
    """Character data, already unescaped."""

    text: str


@dataclass(frozen=True)
class Comment:
    """Comment text without the ``<!--``/``-->`` delimiters."""

    text: str


@dataclass(frozen=True)
class ProcInst:
    """Processing instruction."""

    target: str
    inst: str = ""


Token = Union[StartElement, EndElement, CharData, Comment, ProcInst]
