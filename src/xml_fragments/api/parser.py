"""Fragment parser API for streaming XML documents.

This module provides the scanning core that turns a token stream into
fragments: one body element plus the root start tag and header elements in
scope when it was seen. It also provides convenience functions that build a
StreamDecoder for common inputs.

Matching is by local element name only; namespaces are ignored.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Protocol, Union

from xml_fragments.shared import (
    FragmentConfig,
    Role,
    ScanMetrics,
    StreamConfig,
    UnexpectedEndOfTokenError,
    get_logger,
)
from xml_fragments.tokenization import Decoder, StartElement, StreamDecoder
from xml_fragments.tokenization.decoder import SourceType
from xml_fragments.tree import Element, Fragment, capture_element

FragmentCallback = Callable[[Fragment], None]

MS_PER_SECOND = 1000


class Parser(Protocol):
    """Invokes a callback for each fragment decoded from a token source."""

    def parse(self, decoder: Decoder, on_fragment: FragmentCallback) -> ScanMetrics:
        ...


@dataclass
class _Template:
    root: StartElement
    headers: List[Element] = field(default_factory=list)


class FragmentParser:
    """Scans a token stream and emits a Fragment for every body element.

    A root-matching start tag opens a new template, discarding any headers
    collected so far. Header elements are captured onto the template in
    document order. Each body element is captured and emitted with a snapshot
    of the template's headers. Elements seen before the first root match are
    ignored.

    Args:
        config: Element names to match.
        correlation_id: Optional correlation ID for log records.

    Examples:
        >>> parser = FragmentParser(FragmentConfig(body="item"))
        >>> with StreamDecoder("<list><item>a</item></list>") as decoder:
        ...     fragments = list(parser.iter_fragments(decoder))
        >>> fragments[0].body.chardata
        'a'
    """

    def __init__(self, config: FragmentConfig, correlation_id: Optional[str] = None) -> None:
        self.config = config
        self.correlation_id = correlation_id
        self._roles = config.roles()
        self._logger = get_logger(__name__, correlation_id, "fragment_parser")

    def parse(self, decoder: Decoder, on_fragment: FragmentCallback) -> ScanMetrics:
        """Scan ``decoder`` to the end, calling ``on_fragment`` once per fragment.

        The scan stops at the first exception, whether raised by the decoder
        or by ``on_fragment``; that exception is re-raised unchanged and
        logged without traceback, leaving reporting to the caller.

        Returns:
            Metrics of the completed scan.
        """
        metrics = ScanMetrics()
        start_time = time.time()
        self._logger.info(
            "Starting fragment scan",
            extra={
                "root": self.config.effective_root,
                "body": self.config.body,
                "headers": list(self.config.headers),
            }
        )

        try:
            for fragment in self.iter_fragments(decoder, metrics):
                on_fragment(fragment)
        except Exception:
            metrics.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
            self._logger.warning(
                "Fragment scan aborted",
                extra={
                    "fragments_emitted": metrics.fragments_emitted,
                    "tokens_read": metrics.tokens_read,
                    "processing_time_ms": metrics.processing_time_ms,
                }
            )
            raise

        metrics.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
        self._logger.info("Fragment scan completed", extra=metrics.to_dict())
        return metrics

    def iter_fragments(
        self, decoder: Decoder, metrics: Optional[ScanMetrics] = None
    ) -> Iterator[Fragment]:
        """Yield fragments from ``decoder`` as their body elements close.

        Stopping iteration early stops reading the decoder.
        """
        if metrics is None:
            metrics = ScanMetrics()
        template: Optional[_Template] = None

        while True:
            start = self._next_start(decoder, metrics)
            if start is None:
                if template is not None and self._logger.debug_enabled:
                    self._logger.debug(
                        "Discarding open template at end of stream",
                        extra={"root": template.root.name.local}
                    )
                return

            role = self._roles.get(start.name.local, Role.NONE)

            if Role.ROOT in role:
                template = _Template(root=start.copy())
                metrics.templates_started += 1
                if self._logger.debug_enabled:
                    self._logger.debug("Template started", extra={"root": start.name.local})

            if template is None:
                metrics.elements_skipped += 1
                continue

            if Role.HEADER in role:
                template.headers.append(capture_element(decoder, start))
                metrics.headers_captured += 1
                continue

            if Role.BODY in role:
                body = capture_element(decoder, start)
                fragment = Fragment(
                    root=template.root,
                    headers=tuple(template.headers),
                    body=body,
                )
                metrics.fragments_emitted += 1
                if self._logger.debug_enabled:
                    self._logger.debug(
                        "Fragment emitted",
                        extra={
                            "body": start.name.local,
                            "header_count": len(fragment.headers),
                            "fragment_index": metrics.fragments_emitted,
                        }
                    )
                yield fragment
            elif Role.ROOT not in role:
                metrics.elements_skipped += 1

    @staticmethod
    def _next_start(decoder: Decoder, metrics: ScanMetrics) -> Optional[StartElement]:
        """Return the next start tag, or None at end of input."""
        while True:
            try:
                token = decoder.token()
            except EOFError:
                return None
            if token is None:
                raise UnexpectedEndOfTokenError()
            metrics.tokens_read += 1
            if isinstance(token, StartElement):
                metrics.start_elements += 1
                return token


def new_parser(config: FragmentConfig, correlation_id: Optional[str] = None) -> Parser:
    """Create a parser for the given configuration."""
    return FragmentParser(config, correlation_id)


def parse_fragments(
    source: SourceType,
    config: FragmentConfig,
    on_fragment: FragmentCallback,
    stream_config: Optional[StreamConfig] = None,
    correlation_id: Optional[str] = None,
) -> ScanMetrics:
    """Stream fragments from any supported source into ``on_fragment``.

    Args:
        source: XML text, bytes, file-like object or Path
        config: Element names to match
        on_fragment: Called once per fragment; raising stops the scan
        stream_config: Optional decoder settings
        correlation_id: Optional correlation ID for log records

    Returns:
        Metrics of the completed scan
    """
    with StreamDecoder(source, stream_config, correlation_id) as decoder:
        return FragmentParser(config, correlation_id).parse(decoder, on_fragment)


def parse_string(
    xml_string: str,
    config: FragmentConfig,
    on_fragment: FragmentCallback,
    correlation_id: Optional[str] = None,
) -> ScanMetrics:
    """Stream fragments from an XML string.

    Examples:
        >>> found = []
        >>> _ = parse_string('<r><item id="1"/><item id="2"/></r>',
        ...                  FragmentConfig(body="item"), found.append)
        >>> [f.body.get("id") for f in found]
        ['1', '2']
    """
    return parse_fragments(xml_string, config, on_fragment, correlation_id=correlation_id)


def parse_file(
    file_path: Union[str, Path],
    config: FragmentConfig,
    on_fragment: FragmentCallback,
    stream_config: Optional[StreamConfig] = None,
    correlation_id: Optional[str] = None,
) -> ScanMetrics:
    """Stream fragments from an XML file without loading it into memory.

    Raises:
        FileNotFoundError: if ``file_path`` does not exist
    """
    path_obj = Path(file_path)
    if not path_obj.is_file():
        raise FileNotFoundError(f"File not found: {path_obj}")
    return parse_fragments(path_obj, config, on_fragment, stream_config, correlation_id)
