import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

import structlog

from spanwrap import __version__
from spanwrap.errors import SpanwrapError
from spanwrap.models import FindPattern, WrapRequest
from spanwrap.tree.flatten import get_text
from spanwrap.utils.html import parse_fragment, wrap_html


def _read_markup(path: Path) -> str:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_attributes(pairs: List[str]) -> Dict[str, str]:
    attributes = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            print(f"Error: --attr expects key=value, got '{pair}'", file=sys.stderr)
            sys.exit(1)
        attributes[key] = value
    return attributes


def handle_text(args):
    root = parse_fragment(_read_markup(args.input))
    print(get_text(root))


def handle_wrap(args):
    markup = _read_markup(args.input)

    pattern = FindPattern(
        pattern=args.pattern,
        all_matches=args.all,
        ignore_case=args.ignore_case,
        multiline=args.multiline,
        dotall=args.dotall,
    )
    request = WrapRequest(tag=args.tag, attributes=_parse_attributes(args.attr), css_class=args.css_class)

    try:
        result, count = wrap_html(markup, pattern, request)
    except (SpanwrapError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(result)
        print(f"✅ Saved to {args.output}", file=sys.stderr)
    else:
        print(result)

    print(f"Stats: {count} match(es) wrapped in <{args.tag}>.", file=sys.stderr)


def _configure_logging(verbose: bool):
    # Results go to stdout, so library logs are routed to stderr.
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main():
    parser = argparse.ArgumentParser(prog="spanwrap", description="Spanwrap: wrap text matches across HTML elements")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Log matching details to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_text = subparsers.add_parser("text", help="Print the concatenated text of an HTML fragment")
    p_text.add_argument("input", type=Path, help="Input HTML file")
    p_text.set_defaults(func=handle_text)

    p_wrap = subparsers.add_parser("wrap", help="Wrap pattern matches in a marker element")
    p_wrap.add_argument("input", type=Path, help="Input HTML file")
    p_wrap.add_argument("pattern", type=str, help="Regular expression to search for")
    p_wrap.add_argument("-o", "--output", type=Path, help="Output HTML path (default: stdout)")
    p_wrap.add_argument("--tag", type=str, default="mark", help="Wrapper element name (default: 'mark')")
    p_wrap.add_argument("--class", dest="css_class", type=str, help="class attribute for every wrapper")
    p_wrap.add_argument(
        "--attr",
        action="append",
        metavar="KEY=VALUE",
        help="Extra wrapper attribute (repeatable)",
    )
    p_wrap.add_argument("-a", "--all", action="store_true", help="Wrap every occurrence, not just the first")
    p_wrap.add_argument("-i", "--ignore-case", action="store_true", help="Case-insensitive matching")
    p_wrap.add_argument("--multiline", action="store_true", help="^ and $ match at line boundaries")
    p_wrap.add_argument("--dotall", action="store_true", help=". also matches newlines")
    p_wrap.set_defaults(func=handle_wrap)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
