"""Main CLI entry point for the xml-fragments command-line tool.

Streams large XML files and writes one record per body element, together
with the root and header context it was found in.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from lxml import etree

from xml_fragments import __version__
from xml_fragments.api import FragmentParser, fragments_to_dataframe
from xml_fragments.shared import (
    ConfigError,
    FragmentConfig,
    FragmentError,
    ScanMetrics,
    StreamConfig,
)
from xml_fragments.shared.logging import get_logger
from xml_fragments.tokenization import StreamDecoder
from xml_fragments.tree import Fragment

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

logger = get_logger(__name__, None, "cli")


def build_config(args: argparse.Namespace) -> FragmentConfig:
    """Merge the optional config file with command-line overrides."""
    data: Dict[str, Any] = {}
    if args.config:
        data = FragmentConfig.from_file(args.config).to_dict()
    if args.body:
        data["body"] = args.body
    if args.root:
        data["root"] = args.root
    if args.header:
        data["headers"] = list(args.header)
    return FragmentConfig.from_dict(data)


class FragmentWriter:
    """Writes fragments to a stream as they are emitted.

    JSON lines are written immediately. CSV rows are buffered until
    ``finish`` because the column set is only known once every fragment has
    been seen.
    """

    def __init__(self, output: TextIO, output_format: str):
        self.output = output
        self.output_format = output_format
        self.count = 0
        self._buffered: List[Fragment] = []

    def __call__(self, fragment: Fragment) -> None:
        self.count += 1
        if self.output_format == "jsonl":
            self.output.write(json.dumps(fragment.to_dict()) + "\n")
        else:
            self._buffered.append(fragment)

    def finish(self) -> None:
        """Flush formats that need every fragment before writing."""
        if self.output_format == "csv":
            fragments_to_dataframe(self._buffered).to_csv(self.output, index=False)
        self.output.flush()


def run_scan(path: Path, config: FragmentConfig, stream_config: StreamConfig,
             writer: FragmentWriter, limit: Optional[int] = None) -> ScanMetrics:
    """Scan one file, stopping after ``limit`` fragments when given."""
    parser = FragmentParser(config)
    metrics = ScanMetrics()
    with StreamDecoder(path, stream_config) as decoder:
        if limit is None:
            metrics = parser.parse(decoder, writer)
        elif limit > 0:
            for fragment in parser.iter_fragments(decoder, metrics):
                writer(fragment)
                if writer.count >= limit:
                    break
    writer.finish()
    return metrics


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="xml-fragments",
        description="Stream repeated records and their header context out of large XML files"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("extract", "Write one record per body element"),
        ("stats", "Scan a file and report counts only"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("path", type=Path, help="XML file to scan")
        sub.add_argument("--body", "-b", help="Local name of the repeated element")
        sub.add_argument("--root", "-r", help="Local name of the scope element (default: body)")
        sub.add_argument(
            "--header", "-H",
            action="append",
            help="Local name of a header element (repeatable)"
        )
        sub.add_argument("--config", "-c", type=Path, help="JSON fragment configuration file")
        sub.add_argument(
            "--chunk-size",
            type=int,
            default=StreamConfig.chunk_size,
            help="Bytes read per chunk"
        )
        if name == "extract":
            sub.add_argument(
                "--format", "-f",
                choices=["jsonl", "csv"],
                default="jsonl",
                help=(
                    "Output format (default: jsonl). jsonl is written as fragments "
                    "are found; csv buffers every fragment in memory to align columns"
                )
            )
            sub.add_argument("--limit", "-n", type=int, help="Stop after N fragments")
            sub.add_argument("--output", "-o", type=Path, help="Output file (default: stdout)")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet output")

    return parser


def cmd_extract(args: argparse.Namespace) -> int:
    """Handle extract command."""
    config = build_config(args)
    stream_config = StreamConfig(chunk_size=args.chunk_size)

    if args.output:
        with args.output.open("w", encoding="utf-8", newline="") as output:
            writer = FragmentWriter(output, args.format)
            metrics = run_scan(args.path, config, stream_config, writer, args.limit)
        print(f"Wrote {metrics.fragments_emitted} fragments to {args.output}", file=sys.stderr)
    else:
        writer = FragmentWriter(sys.stdout, args.format)
        run_scan(args.path, config, stream_config, writer, args.limit)
    return EXIT_OK


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle stats command."""
    config = build_config(args)
    stream_config = StreamConfig(chunk_size=args.chunk_size)
    with StreamDecoder(args.path, stream_config) as decoder:
        metrics = FragmentParser(config).parse(decoder, lambda fragment: None)
    print(json.dumps(metrics.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    # Set up logging verbosity
    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        import logging
        logging.basicConfig(level=logging.ERROR)

    if not args.path.is_file():
        print(f"File not found: {args.path}", file=sys.stderr)
        return EXIT_ERROR

    try:
        if args.command == "extract":
            return cmd_extract(args)
        return cmd_stats(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (FragmentError, etree.XMLSyntaxError) as e:
        logger.error("Scan failed", extra={"file": str(args.path)})
        print(f"Error processing {args.path}: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
