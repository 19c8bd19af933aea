"""Binding of XML elements onto dataclass destination types.

A destination type is a dataclass whose fields declare where their value
comes from in the element being decoded::

    @dataclass
    class Item:
        id: int = xml_attr("id", default=0)
        title: str = xml_child("title", default="")
        authors: List[str] = xml_child("meta>author", default_factory=list)
        note: str = xml_text(default="")

Names in paths and attributes are matched by local name, ignoring
namespaces. Fields without a binding are left to their defaults. Scalar
values are converted from text for ``str``, ``int``, ``float`` and ``bool``;
a field typed with another dataclass is decoded recursively and ``List[X]``
or ``Tuple[X, ...]`` fields collect every match of their path.
"""

import dataclasses
from dataclasses import MISSING, dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from lxml import etree

from ..shared.errors import BindingError
from ..tokenization.encoding import escape_text
from ..tokenization.tokens import Attr, Name

T = TypeVar("T")

XML_BINDING = "xml_fragments.binding"

_TRUE_VALUES = {"true", "1"}
_FALSE_VALUES = {"false", "0"}


class BindingKind(Enum):
    """Source of a bound field's value."""

    CHILD = auto()      # Text or subtree of a descendant element path
    ATTR = auto()       # Attribute value by local name
    TEXT = auto()       # Direct character data of the element
    INNER = auto()      # Raw inner markup of the element
    COMMENT = auto()    # Direct comment text of the element
    NAME = auto()       # Element name
    ATTRS = auto()      # All attributes


@dataclass(frozen=True)
class Binding:
    """Binding metadata attached to a dataclass field."""

    kind: BindingKind
    path: Tuple[str, ...] = ()


def _bound_field(kind: BindingKind, path: Tuple[str, ...], default: Any,
                 default_factory: Any) -> Any:
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={XML_BINDING: Binding(kind, path)},
    )


def xml_child(path: Optional[str] = None, *, default: Any = MISSING,
              default_factory: Any = MISSING) -> Any:
    """Bind a field to a descendant element, e.g. ``"bar>baz"``.

    Without a path the field name is used as the child's local name.
    """
    steps = tuple(step.strip() for step in path.split(">")) if path else ()
    if any(not step for step in steps):
        raise ValueError(f"Invalid child path: {path!r}")
    return _bound_field(BindingKind.CHILD, steps, default, default_factory)


def xml_attr(name: Optional[str] = None, *, default: Any = MISSING,
             default_factory: Any = MISSING) -> Any:
    """Bind a field to an attribute (by local name, defaulting to the field name)."""
    return _bound_field(BindingKind.ATTR, (name,) if name else (), default, default_factory)


def xml_text(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Bind a field to the element's direct character data."""
    return _bound_field(BindingKind.TEXT, (), default, default_factory)


def xml_inner(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Bind a field to the element's raw inner markup."""
    return _bound_field(BindingKind.INNER, (), default, default_factory)


def xml_comment(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Bind a field to the concatenated text of the element's direct comments."""
    return _bound_field(BindingKind.COMMENT, (), default, default_factory)


def xml_name(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Bind a field to the element's Name."""
    return _bound_field(BindingKind.NAME, (), default, default_factory)


def xml_attrs(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Bind a field to all attributes as a tuple of Attr."""
    return _bound_field(BindingKind.ATTRS, (), default, default_factory)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _is_element(node: Any) -> bool:
    return isinstance(node.tag, str)


def inner_xml(node: Any) -> str:
    """Serialized content of ``node`` between its start and end tags."""
    parts = [escape_text(node.text or "")]
    parts.extend(
        etree.tostring(child, encoding="unicode", with_tail=True) for child in node
    )
    return "".join(parts)


def chardata(node: Any) -> str:
    """Character data directly inside ``node``, excluding descendants."""
    return (node.text or "") + "".join(child.tail or "" for child in node)


def comment_text(node: Any) -> str:
    """Text of the comments directly inside ``node``."""
    return "".join(child.text or "" for child in node if child.tag is etree.Comment)


def _select(node: Any, path: Tuple[str, ...]) -> List[Any]:
    nodes = [node]
    for step in path:
        nodes = [
            child
            for parent in nodes
            for child in parent
            if _is_element(child) and _local(child.tag) == step
        ]
    return nodes


@lru_cache(maxsize=256)
def _field_types(destination: type) -> Dict[str, Any]:
    return get_type_hints(destination)


def _unwrap_optional(hint: Any) -> Any:
    if get_origin(hint) is Union:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _sequence_item(hint: Any) -> Tuple[Optional[type], Any]:
    """Return ``(container, item type)`` for List/Tuple hints, else ``(None, hint)``."""
    origin = get_origin(hint)
    args = get_args(hint)
    if origin is list:
        return list, args[0] if args else Any
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        return tuple, args[0]
    return None, hint


def _convert_text(text: str, hint: Any, destination: type, field_name: str) -> Any:
    hint = _unwrap_optional(hint)
    if hint is str or hint is Any:
        return text
    if not text.strip():
        return MISSING
    try:
        if hint is bool:
            value = text.strip().lower()
            if value in _TRUE_VALUES:
                return True
            if value in _FALSE_VALUES:
                return False
            raise ValueError(f"invalid boolean {text!r}")
        if hint in (int, float):
            return hint(text.strip())
    except ValueError as e:
        raise BindingError(
            f"Cannot convert {text!r} for {destination.__name__}.{field_name}: {e}",
            destination=destination,
            field_name=field_name,
        ) from e
    raise BindingError(
        f"Unsupported field type {hint!r} for {destination.__name__}.{field_name}",
        destination=destination,
        field_name=field_name,
    )


def _convert_node(child: Any, hint: Any, destination: type, field_name: str) -> Any:
    item_type = _unwrap_optional(hint)
    if dataclasses.is_dataclass(item_type):
        return decode_node(child, item_type)
    return _convert_text(chardata(child), item_type, destination, field_name)


def _extract(node: Any, binding: Binding, field: "dataclasses.Field[Any]", hint: Any,
             destination: type) -> Any:
    kind = binding.kind
    if kind is BindingKind.NAME:
        return Name.from_clark(node.tag)
    if kind is BindingKind.ATTRS:
        return tuple(Attr(Name.from_clark(k), v) for k, v in node.attrib.items())
    if kind is BindingKind.INNER:
        return inner_xml(node)
    if kind is BindingKind.COMMENT:
        return comment_text(node)
    if kind is BindingKind.TEXT:
        return _convert_text(chardata(node), hint, destination, field.name)
    if kind is BindingKind.ATTR:
        wanted = binding.path[0] if binding.path else field.name
        for key, value in node.attrib.items():
            if _local(key) == wanted:
                return _convert_text(value, hint, destination, field.name)
        return MISSING

    matches = _select(node, binding.path or (field.name,))
    container, item_type = _sequence_item(_unwrap_optional(hint))
    if container is not None:
        values = (_convert_node(child, item_type, destination, field.name) for child in matches)
        return container(value for value in values if value is not MISSING)
    if not matches:
        return MISSING
    return _convert_node(matches[0], hint, destination, field.name)


def decode_node(node: Any, destination: Type[T]) -> T:
    """Decode an lxml element into a new instance of ``destination``.

    Raises:
        BindingError: if ``destination`` is not a dataclass type, a value
            cannot be converted, or a field without default has no value.
    """
    if not (isinstance(destination, type) and dataclasses.is_dataclass(destination)):
        raise BindingError(
            f"Destination must be a dataclass type, got {destination!r}",
            destination=destination if isinstance(destination, type) else None,
        )
    hints = _field_types(destination)
    values: Dict[str, Any] = {}
    for field in dataclasses.fields(destination):
        binding = field.metadata.get(XML_BINDING)
        if binding is None or not field.init:
            continue
        value = _extract(node, binding, field, hints.get(field.name, Any), destination)
        if value is not MISSING:
            values[field.name] = value
        elif field.default is MISSING and field.default_factory is MISSING:
            raise BindingError(
                f"No value for required field {destination.__name__}.{field.name} "
                f"in <{_local(node.tag)}>",
                destination=destination,
                field_name=field.name,
            )
    return destination(**values)


def unmarshal(data: Union[str, bytes], destination: Type[T]) -> T:
    """Parse an XML document and decode its root element into ``destination``.

    Entity resolution and network access are disabled. Malformed input raises
    ``lxml.etree.XMLSyntaxError``.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    root = etree.fromstring(data, parser)
    return decode_node(root, destination)
