"""Tabular export of fragments.

Flattens fragments to flat records (one per body) and wraps them in a pandas
DataFrame, so repeated records and the header context that scopes them end
up on the same row.
"""

import dataclasses
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from xml_fragments.shared import get_logger
from xml_fragments.tree import Element, Fragment

_logger = get_logger(__name__, None, "dataframe_adapter")


def _element_columns(prefix: str, element: Element,
                     destination: Optional[Type[Any]]) -> Dict[str, Any]:
    if destination is None:
        columns: Dict[str, Any] = {
            f"{prefix}@{attr.name.local}": attr.value for attr in element.attrs
        }
        columns[prefix] = element.chardata.strip() or element.inner_xml
        return columns
    value = element.unmarshal(destination)
    return {f"{prefix}.{key}": item for key, item in dataclasses.asdict(value).items()}


def fragment_to_record(
    fragment: Fragment,
    body_type: Optional[Type[Any]] = None,
    header_types: Optional[Mapping[str, Type[Any]]] = None,
) -> Dict[str, Any]:
    """Flatten one fragment to a ``{column: value}`` record.

    Columns:
        ``root`` and ``root@<attr>`` for the root start tag; for every header
        and for the body either ``<name>`` (text or inner markup) with
        ``<name>@<attr>`` columns, or ``<name>.<field>`` columns when a
        destination type is given for it. Repeated headers keep the last
        occurrence.
    """
    record: Dict[str, Any] = {"root": fragment.root.name.local}
    for attr in fragment.root.attrs:
        record[f"root@{attr.name.local}"] = attr.value
    header_types = header_types or {}
    for header in fragment.headers:
        local = header.name.local
        record.update(_element_columns(local, header, header_types.get(local)))
    record.update(_element_columns(fragment.body.name.local, fragment.body, body_type))
    return record


def fragments_to_records(
    fragments: Iterable[Fragment],
    body_type: Optional[Type[Any]] = None,
    header_types: Optional[Mapping[str, Type[Any]]] = None,
) -> List[Dict[str, Any]]:
    """Flatten fragments to records, see ``fragment_to_record``."""
    return [fragment_to_record(f, body_type, header_types) for f in fragments]


def fragments_to_dataframe(
    fragments: Iterable[Fragment],
    body_type: Optional[Type[Any]] = None,
    header_types: Optional[Mapping[str, Type[Any]]] = None,
) -> Any:
    """Build a pandas DataFrame with one row per fragment.

    Examples:
        >>> from xml_fragments import FragmentConfig, parse_string
        >>> found = []
        >>> _ = parse_string('<r><item id="1">a</item></r>',
        ...                  FragmentConfig(body="item"), found.append)
        >>> fragments_to_dataframe(found)["item@id"].tolist()
        ['1']
    """
    import pandas as pd

    records = fragments_to_records(fragments, body_type, header_types)
    df = pd.DataFrame.from_records(records)
    _logger.debug(
        "Fragments converted to DataFrame",
        extra={"row_count": len(df), "column_count": len(df.columns)}
    )
    return df
