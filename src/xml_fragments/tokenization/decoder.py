"""Token sources for fragment extraction.

A token source hands out XML tokens one at a time and can decode the subtree
under a start tag it has just produced into a destination type. ``Decoder``
is the minimal protocol the fragment parser depends on; ``StreamDecoder`` is
the production implementation over lxml's incremental pull parser.

StreamDecoder reads its input in fixed-size chunks and prunes every subtree
whose tokens have been handed out, so memory use is bounded by the element
currently being decoded rather than by the document size.
"""

import io
from collections import deque
from pathlib import Path
from typing import (
    IO,
    Any,
    Callable,
    Deque,
    List,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    Union,
    runtime_checkable,
)

from lxml import etree

from ..shared.config import StreamConfig
from ..shared.errors import DecodeError, UnexpectedEndOfTokenError
from ..shared.logging import get_logger
from ..tree.binding import decode_node
from .tokens import (
    Attr,
    CharData,
    Comment,
    EndElement,
    Name,
    ProcInst,
    StartElement,
    Token,
)

T = TypeVar("T")

SourceType = Union[str, bytes, Path, IO[bytes], IO[str]]

_EVENTS = ("start", "end", "comment", "pi")


@runtime_checkable
class Decoder(Protocol):
    """Capabilities the fragment parser needs from a token source."""

    def token(self) -> Optional[Token]:
        """Return the next token.

        Raises:
            EOFError: when the input is exhausted. Any other exception is a
                read failure.
        """
        ...

    def decode_element(self, destination: Type[T],
                       start: Optional[StartElement] = None) -> T:
        """Decode the subtree rooted at ``start`` into ``destination``.

        When ``start`` is None the next start tag in the stream is used. On
        return the stream is positioned after the subtree's end tag.
        """
        ...


def _open_source(source: SourceType) -> Tuple[Callable[[int], Any], Optional[IO[Any]]]:
    """Return a chunk reader for ``source`` and the handle to close, if owned."""
    if isinstance(source, Path):
        handle = source.open("rb")
        return handle.read, handle
    if isinstance(source, str):
        return io.BytesIO(source.encode("utf-8")).read, None
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source)).read, None
    if hasattr(source, "read"):
        return source.read, None
    raise TypeError(f"Unsupported XML source type: {type(source).__name__}")


def _start_token(node: Any) -> StartElement:
    return StartElement(
        name=Name.from_clark(node.tag),
        attrs=tuple(Attr(Name.from_clark(key), value) for key, value in node.attrib.items()),
    )


class StreamDecoder:
    """Forward-only token source over ``lxml.etree.XMLPullParser``.

    Args:
        source: XML as text, bytes, a file-like object or a Path. Text input
            is fed to lxml as UTF-8.
        config: Stream settings (chunk size, entity handling).
        correlation_id: Optional correlation ID for log records.

    Malformed XML raises ``lxml.etree.XMLSyntaxError`` from ``token`` or
    ``decode_element``; the error is not wrapped. Input that is empty or
    holds only whitespace is not an error: ``token`` raises EOFError at once.
    """

    def __init__(
        self,
        source: SourceType,
        config: Optional[StreamConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config or StreamConfig()
        self._logger = get_logger(__name__, correlation_id, "stream_decoder")
        self._read, self._handle = _open_source(source)
        self._parser = etree.XMLPullParser(
            events=_EVENTS,
            resolve_entities=self.config.resolve_entities,
            huge_tree=self.config.huge_tree,
            remove_comments=not self.config.keep_comments,
            no_network=True,
        )
        self._events: Deque[Tuple[str, Any]] = deque()
        self._pending: Deque[Tuple[Token, Any]] = deque()
        self._open: List[Tuple[StartElement, Any]] = []
        self._capturing = 0
        self._exhausted = False
        self._has_content = False
        self.bytes_read = 0

    def __enter__(self) -> "StreamDecoder":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying file when the decoder opened it."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    @property
    def depth(self) -> int:
        """Number of start tags handed out whose end tag has not been."""
        return len(self._open)

    def token(self) -> Optional[Token]:
        """Return the next token, raising EOFError at end of input."""
        while not self._pending:
            if not self._events and not self._fill():
                self.close()
                raise EOFError("end of XML stream")
            if self._events:
                self._convert(*self._events.popleft())
        token, node = self._pending.popleft()
        if isinstance(token, StartElement):
            self._open.append((token, node))
        elif isinstance(token, EndElement):
            self._open.pop()
            self._prune(node)
        return token

    def decode_element(self, destination: Type[T],
                       start: Optional[StartElement] = None) -> T:
        """Decode the subtree of ``start`` (or of the next start tag)."""
        if start is None:
            start = self._next_start()
        if not self._open or self._open[-1][0] != start:
            raise DecodeError(
                f"<{start.name.local}> is not the most recent start tag of this stream",
                element=start.name.local,
            )
        depth = len(self._open)
        node = self._open[-1][1]
        self._capturing += 1
        try:
            while len(self._open) >= depth:
                try:
                    self.token()
                except EOFError:
                    raise DecodeError(
                        f"unexpected end of stream inside <{start.name.local}>",
                        element=start.name.local,
                    ) from None
            value = decode_node(node, destination)
        finally:
            self._capturing -= 1
        self._prune(node)
        return value

    def _next_start(self) -> StartElement:
        while True:
            token = self.token()
            if token is None:
                raise UnexpectedEndOfTokenError()
            if isinstance(token, StartElement):
                return token

    def _fill(self) -> bool:
        """Feed the parser until it produces events; False once input is exhausted."""
        while not self._events:
            if self._exhausted:
                return False
            chunk = self._read(self.config.chunk_size)
            if chunk:
                if isinstance(chunk, str):
                    chunk = chunk.encode("utf-8")
                self.bytes_read += len(chunk)
                self._has_content = self._has_content or bool(chunk.strip())
                self._parser.feed(chunk)
            else:
                self._exhausted = True
                # empty or whitespace-only input is an empty stream
                if self._has_content:
                    self._parser.close()
                self._logger.debug(
                    "XML stream exhausted", extra={"bytes_read": self.bytes_read}
                )
            self._events.extend(self._parser.read_events())
        return True

    def _convert(self, event: str, node: Any) -> None:
        """Turn one lxml event into tokens, including the text preceding it."""
        if event == "end":
            text = node[-1].tail if len(node) else node.text
            if text:
                self._pending.append((CharData(text), None))
            self._pending.append((EndElement(Name.from_clark(node.tag)), node))
            return

        previous = node.getprevious()
        if previous is not None:
            text = previous.tail
        else:
            parent = node.getparent()
            text = parent.text if parent is not None else None
        if text:
            self._pending.append((CharData(text), None))

        if event == "start":
            self._pending.append((_start_token(node), node))
        elif event == "comment":
            self._pending.append((Comment(node.text or ""), None))
        elif event == "pi":
            self._pending.append((ProcInst(node.target, node.text or ""), None))

    def _prune(self, node: Any) -> None:
        """Drop a finished subtree and its already consumed preceding siblings."""
        if self._capturing:
            return
        node.clear(keep_tail=True)
        parent = node.getparent()
        if parent is not None:
            while node.getprevious() is not None:
                del parent[0]
