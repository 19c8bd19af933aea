"""Serialization of tokens back to XML markup.

Used to rebuild a well-formed snippet around captured inner markup. Namespaced
names are written with generated prefixes, so the output is equivalent to the
input but not necessarily byte-identical.
"""

from typing import Dict, List, Tuple

from .tokens import XML_NAMESPACE, Attr, EndElement, Name, StartElement

_TEXT_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;"}
_ATTR_ESCAPES = {
    **_TEXT_ESCAPES,
    '"': "&quot;",
    "\t": "&#9;",
    "\n": "&#10;",
    "\r": "&#13;",
}


def escape_text(text: str) -> str:
    """Escape character data for use between tags."""
    return "".join(_TEXT_ESCAPES.get(ch, ch) for ch in text)


def escape_attr(value: str) -> str:
    """Escape an attribute value for use inside double quotes."""
    return "".join(_ATTR_ESCAPES.get(ch, ch) for ch in value)


def _attr_name(name: Name, prefixes: Dict[str, str], decls: List[str]) -> str:
    if not name.space:
        return name.local
    if name.space == XML_NAMESPACE:
        return f"xml:{name.local}"
    prefix = prefixes.get(name.space)
    if prefix is None:
        prefix = f"ns{len(prefixes)}"
        prefixes[name.space] = prefix
        decls.append(f' xmlns:{prefix}="{escape_attr(name.space)}"')
    return f"{prefix}:{name.local}"


def encode_start(start: StartElement) -> str:
    """Encode a start tag, declaring any namespaces it uses."""
    decls: List[str] = []
    if start.name.space:
        decls.append(f' xmlns="{escape_attr(start.name.space)}"')
    prefixes: Dict[str, str] = {}
    attrs = []
    for attr in start.attrs:
        qualified = _attr_name(attr.name, prefixes, decls)
        attrs.append(f' {qualified}="{escape_attr(attr.value)}"')
    return f"<{start.name.local}{''.join(decls)}{''.join(attrs)}>"


def encode_end(end: EndElement) -> str:
    """Encode an end tag."""
    return f"</{end.name.local}>"


def encode_attrs(attrs: Tuple[Attr, ...]) -> Dict[str, str]:
    """Flatten attributes to a ``{clark name: value}`` mapping."""
    return {attr.name.clark(): attr.value for attr in attrs}
