"""Tests for the fragment parser."""

import logging
import re
from typing import List

import pytest

from xml_fragments.api.parser import (
    FragmentParser,
    new_parser,
    parse_file,
    parse_fragments,
    parse_string,
)
from xml_fragments.shared import FragmentConfig, UnexpectedEndOfTokenError
from xml_fragments.tokenization import (
    Attr,
    CharData,
    EndElement,
    Name,
    StartElement,
    StreamDecoder,
)
from xml_fragments.tree import Element, Fragment


def minify(xml: str) -> str:
    """Drop whitespace between tags."""
    return re.sub(r">\s+<", "><", xml.strip())


def start(local: str, *attrs: str) -> StartElement:
    pairs = zip(attrs[::2], attrs[1::2])
    return StartElement(Name(local), tuple(Attr(Name(k), v) for k, v in pairs))


def element(local: str, inner_xml: str, chardata: str, *attrs: str) -> Element:
    return Element(
        name=Name(local),
        attrs=start(local, *attrs).attrs,
        inner_xml=inner_xml,
        chardata=chardata,
    )


def collect(xml: str, config: FragmentConfig) -> List[Fragment]:
    fragments: List[Fragment] = []
    with StreamDecoder(minify(xml)) as decoder:
        FragmentParser(config).parse(decoder, fragments.append)
    return fragments


class ListDecoder:
    """Token source over a fixed token list."""

    def __init__(self, tokens, captured=None):
        self.tokens = list(tokens)
        self.captured = captured or Element(inner_xml="captured", chardata="captured")
        self.calls = 0

    def token(self):
        self.calls += 1
        if not self.tokens:
            raise EOFError()
        token = self.tokens.pop(0)
        if isinstance(token, Exception):
            raise token
        return token

    def decode_element(self, destination, start=None):
        return self.captured


class TestScenarios:
    """Documented extraction scenarios."""

    def test_single_root_body_with_attributes(self):
        """Test root and body being the same element."""
        fragments = collect(
            """<head attr="value">
                <foo>bar</foo>
            </head>""",
            FragmentConfig(body="head"),
        )

        assert fragments == [
            Fragment(
                root=start("head", "attr", "value"),
                headers=(),
                body=element("head", "<foo>bar</foo>", "", "attr", "value"),
            )
        ]

    def test_repeated_items_in_list(self):
        """Test each repeated item becoming its own fragment."""
        fragments = collect(
            """<list>
                <item>
                    <foo>foo1</foo>
                    <bar>
                        <baz>baz1</baz>
                    </bar>
                </item>
                <item>
                    <foo>foo2</foo>
                </item>
            </list>""",
            FragmentConfig(body="item"),
        )

        assert fragments == [
            Fragment(
                root=start("item"),
                headers=(),
                body=element("item", "<foo>foo1</foo><bar><baz>baz1</baz></bar>", ""),
            ),
            Fragment(
                root=start("item"),
                headers=(),
                body=element("item", "<foo>foo2</foo>", ""),
            ),
        ]

    def test_headers_scoped_by_root(self):
        """Test headers collected per root block and shared by its bodies."""
        head1 = element("head1", "<name>head1name</name><value>head1value</value>", "")
        head2 = element(
            "head2", '<name attr="head2attr">head2name</name><value>head2value</value>', ""
        )

        fragments = collect(
            """<xmlRoot>
                <rootTag>
                    <head2>
                        <name attr="head2attr">head2name</name>
                        <value>head2value</value>
                    </head2>
                    <body>foo1</body>
                </rootTag>
                <rootTag>
                    <head1>
                        <name>head1name</name>
                        <value>head1value</value>
                    </head1>
                    <head2>
                        <name attr="head2attr">head2name</name>
                        <value>head2value</value>
                    </head2>
                    <body>foo2</body>
                    <body>foo3</body>
                </rootTag>
            </xmlRoot>""",
            FragmentConfig(root="rootTag", body="body", headers=["head1", "head2"]),
        )

        assert fragments == [
            Fragment(root=start("rootTag"), headers=(head2,),
                     body=element("body", "foo1", "foo1")),
            Fragment(root=start("rootTag"), headers=(head1, head2),
                     body=element("body", "foo2", "foo2")),
            Fragment(root=start("rootTag"), headers=(head1, head2),
                     body=element("body", "foo3", "foo3")),
        ]
        assert fragments[1].headers == fragments[2].headers


class TestTemplateSemantics:
    """Tests for root resets, header accumulation and snapshots."""

    def test_root_defaults_to_body(self):
        """Test that an unset root matches the body name."""
        fragments = collect("<r><b>1</b><b>2</b></r>", FragmentConfig(body="b"))

        assert [f.root.name.local for f in fragments] == ["b", "b"]

    def test_body_before_first_root_is_ignored(self):
        """Test that nothing is emitted before a root has been seen."""
        fragments = collect(
            "<doc><b>early</b><r><b>late</b></r><b>after</b></doc>",
            FragmentConfig(root="r", body="b"),
        )

        # the template stays open after </r>, so the trailing body still counts
        assert [f.body.chardata for f in fragments] == ["late", "after"]

    def test_headers_before_first_root_are_ignored(self):
        """Test that headers outside any root scope are not captured."""
        fragments = collect(
            "<doc><h>stray</h><r><b>x</b></r></doc>",
            FragmentConfig(root="r", body="b", headers=["h"]),
        )

        assert fragments[0].headers == ()

    def test_root_resets_headers(self):
        """Test that a new root discards headers even if no body used them."""
        fragments = collect(
            "<doc><r><h>a</h></r><r><b>x</b></r></doc>",
            FragmentConfig(root="r", body="b", headers=["h"]),
        )

        assert len(fragments) == 1
        assert fragments[0].headers == ()

    def test_repeated_header_names_accumulate(self):
        """Test that the same header name appearing twice yields two entries."""
        fragments = collect(
            "<r><h>1</h><h>2</h><b>x</b></r>",
            FragmentConfig(root="r", body="b", headers=["h"]),
        )

        assert [h.chardata for h in fragments[0].headers] == ["1", "2"]
        assert fragments[0].header("h").chardata == "2"

    def test_headers_are_snapshotted_per_fragment(self):
        """Test that later headers do not leak into earlier fragments."""
        fragments = collect(
            "<r><h>1</h><b>x</b><h>2</h><b>y</b></r>",
            FragmentConfig(root="r", body="b", headers=["h"]),
        )

        assert [h.chardata for h in fragments[0].headers] == ["1"]
        assert [h.chardata for h in fragments[1].headers] == ["1", "2"]
        assert isinstance(fragments[0].headers, tuple)

    def test_nested_bodies_inside_ignored_elements(self):
        """Test that ignored elements are streamed through, not skipped."""
        fragments = collect(
            "<r><wrapper><b>1</b></wrapper><b>2</b></r>",
            FragmentConfig(root="r", body="b"),
        )

        assert [f.body.chardata for f in fragments] == ["1", "2"]

    def test_matching_ignores_namespaces(self):
        """Test that elements match by local name in any namespace."""
        fragments = collect(
            '<x:list xmlns:x="urn:a"><x:item>1</x:item><item xmlns="urn:b">2</item></x:list>',
            FragmentConfig(body="item"),
        )

        assert [f.body.name for f in fragments] == [Name("item", "urn:a"), Name("item", "urn:b")]

    def test_dangling_template_is_discarded(self):
        """Test that a root without bodies ends the scan successfully."""
        fragments = collect(
            "<doc><r><h>only header</h></r></doc>",
            FragmentConfig(root="r", body="b", headers=["h"]),
        )

        assert fragments == []


class TestParseErrors:
    """Tests for error propagation and cancellation."""

    @pytest.mark.parametrize("xml,config", [
        ("<foo>bar</foo>", FragmentConfig(root="foo", body="foo")),
        ("<foo><bar>baz</bar></foo>", FragmentConfig(root="foo", body="bar")),
    ])
    def test_callback_error_is_returned_verbatim(self, xml, config):
        """Test that the callback's exception propagates unchanged."""
        expected = RuntimeError("expected error!")

        def on_fragment(fragment):
            raise expected

        with StreamDecoder(xml) as decoder:
            with pytest.raises(RuntimeError) as exc_info:
                FragmentParser(config).parse(decoder, on_fragment)

        assert exc_info.value is expected

    def test_callback_error_stops_scan(self):
        """Test that exactly k fragments are seen and no more tokens are read."""
        expected = ValueError("stop")
        seen = []

        decoder = ListDecoder([
            start("r"), start("b"), start("b"), start("b"), EndElement(Name("r")),
        ])
        calls_at_failure = []

        def on_fragment(fragment):
            seen.append(fragment)
            if len(seen) == 2:
                calls_at_failure.append(decoder.calls)
                raise expected

        with pytest.raises(ValueError) as exc_info:
            FragmentParser(FragmentConfig(root="r", body="b")).parse(decoder, on_fragment)

        assert exc_info.value is expected
        assert len(seen) == 2
        assert decoder.calls == calls_at_failure[0]

    def test_nil_token_is_protocol_violation(self):
        """Test that a None token raises a distinct error."""
        decoder = ListDecoder([start("r"), None])

        with pytest.raises(UnexpectedEndOfTokenError, match="unexpected nil token"):
            FragmentParser(FragmentConfig(body="r")).parse(decoder, lambda f: None)

    def test_read_error_is_propagated(self):
        """Test that token source failures abort the scan unchanged."""
        failure = OSError("disk gone")
        decoder = ListDecoder([start("r"), CharData("x"), failure])

        with pytest.raises(OSError) as exc_info:
            FragmentParser(FragmentConfig(root="r", body="b")).parse(decoder, lambda f: None)

        assert exc_info.value is failure

    def test_malformed_xml_is_fatal(self):
        """Test that malformed input is not repaired."""
        from lxml import etree

        with pytest.raises(etree.XMLSyntaxError):
            parse_string("<r><b>1</b><b>2</r>", FragmentConfig(body="b"), lambda f: None)

    def test_captured_element_comes_from_decoder(self):
        """Test that the parser uses the decoder's capture with the start tag's name."""
        decoder = ListDecoder([start("b", "id", "7")])

        fragments = list(FragmentParser(FragmentConfig(body="b")).iter_fragments(decoder))

        assert fragments[0].body.inner_xml == "captured"
        assert fragments[0].body.name == Name("b")
        assert fragments[0].body.get("id") == "7"


class TestParserApi:
    """Tests for the parser facade and convenience functions."""

    def test_new_parser(self):
        """Test the parser factory."""
        parser = new_parser(FragmentConfig(body="item"))

        assert isinstance(parser, FragmentParser)
        assert parser.config.effective_root == "item"

    def test_parse_returns_metrics(self):
        """Test scan metrics for a document with headers."""
        fragments = []
        metrics = parse_string(
            "<doc><r><h>1</h><b>x</b><skip/><b>y</b></r></doc>",
            FragmentConfig(root="r", body="b", headers=["h"]),
            fragments.append,
        )

        assert metrics.fragments_emitted == 2
        assert metrics.templates_started == 1
        assert metrics.headers_captured == 1
        assert metrics.elements_skipped == 2
        assert metrics.start_elements == 6
        assert metrics.processing_time_ms >= 0

    def test_iter_fragments_stops_early(self):
        """Test that the generator form can be abandoned mid-stream."""
        xml = "<r>" + "<b>x</b>" * 10 + "</r>"
        parser = FragmentParser(FragmentConfig(root="r", body="b"))

        with StreamDecoder(xml) as decoder:
            iterator = parser.iter_fragments(decoder)
            first = next(iterator)
            assert decoder.depth == 1

        assert first.body.chardata == "x"

    def test_parse_fragments_from_bytes(self):
        """Test streaming from bytes with an XML declaration."""
        found = []
        parse_fragments(
            b'<?xml version="1.0" encoding="UTF-8"?><r><b>\xc3\xa9</b></r>',
            FragmentConfig(body="b"),
            found.append,
        )

        assert found[0].body.chardata == "é"

    def test_empty_document(self):
        """Test that an empty document is a successful scan with no fragments."""
        found = []

        metrics = parse_string("", FragmentConfig(body="b"), found.append)

        assert found == []
        assert metrics.tokens_read == 0

    def test_parse_file(self, tmp_path):
        """Test streaming from a file path."""
        path = tmp_path / "doc.xml"
        path.write_text("<r><b>1</b><b>2</b></r>", encoding="utf-8")
        found = []

        metrics = parse_file(str(path), FragmentConfig(body="b"), found.append)

        assert metrics.fragments_emitted == 2

    def test_parse_file_missing(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            parse_file(tmp_path / "missing.xml", FragmentConfig(body="b"), lambda f: None)

    def test_scan_logging(self, caplog):
        """Test that scans log start and completion with the component name."""
        caplog.set_level(logging.INFO, logger="xml_fragments.api.parser")

        parse_string("<b/>", FragmentConfig(body="b"), lambda f: None, correlation_id="abc")

        records = [r for r in caplog.records if r.name == "xml_fragments.api.parser"]
        messages = [r.getMessage() for r in records]
        assert "Starting fragment scan" in messages
        assert "Fragment scan completed" in messages
        assert all(r.component == "fragment_parser" for r in records)
        assert all(r.correlation_id == "abc" for r in records)

    def test_cancelled_scan_logs_warning_without_traceback(self, caplog):
        """Test that stopping from the callback is not reported as an error."""
        caplog.set_level(logging.INFO, logger="xml_fragments.api.parser")

        def on_fragment(fragment):
            raise KeyError("stop")

        with pytest.raises(KeyError):
            parse_string("<r><b/><b/></r>", FragmentConfig(body="b"), on_fragment)

        aborted = [r for r in caplog.records if r.getMessage() == "Fragment scan aborted"]
        assert len(aborted) == 1
        assert aborted[0].levelno == logging.WARNING
        assert not aborted[0].exc_info
        assert aborted[0].fragments_emitted == 1
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
