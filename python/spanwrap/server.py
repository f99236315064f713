import logging
import sys
from typing import Optional

import structlog
from mcp.server.fastmcp import FastMCP

from spanwrap.models import FindPattern, WrapRequest
from spanwrap.splice.locator import locate_matches
from spanwrap.tree.flatten import get_text
from spanwrap.utils.html import parse_fragment, wrap_html

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio. All logs must go to stderr.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("Spanwrap Highlighting Service")


@mcp.tool()
def extract_text(markup: str) -> str:
    """
    Returns the concatenated text of an HTML fragment, exactly as the matcher sees it
    (no separators are inserted between elements).

    Args:
        markup: HTML fragment.
    """
    try:
        return get_text(parse_fragment(markup))
    except Exception as e:
        return f"Error reading markup: {str(e)}"


@mcp.tool()
def count_matches(markup: str, pattern: str, ignore_case: bool = False) -> str:
    """
    Counts non-overlapping occurrences of a regular expression in the text of an HTML fragment.
    Matches may span element boundaries (e.g. 'TEST' matches '<i>T</i><b>EST</b>').

    Args:
        markup: HTML fragment.
        pattern: Python regular expression.
        ignore_case: Case-insensitive matching.
    """
    try:
        text = get_text(parse_fragment(markup))
        spans = locate_matches(text, FindPattern(pattern=pattern, all_matches=True, ignore_case=ignore_case))
        return f"Found {len(spans)} match(es)."
    except Exception as e:
        return f"Error counting matches: {str(e)}"


@mcp.tool()
def wrap_matches(
    markup: str,
    pattern: str,
    tag: str = "mark",
    all_matches: bool = True,
    ignore_case: bool = False,
    css_class: Optional[str] = None,
) -> str:
    """
    Wraps matches of a regular expression in a marker element and returns the new HTML.

    A match crossing element boundaries is wrapped piecewise: one marker per text node,
    each inside its original parent, so the existing structure is never broken.

    Args:
        markup: HTML fragment.
        pattern: Python regular expression. Must not match the empty string.
        tag: Marker element name (default 'mark').
        all_matches: Wrap every occurrence (default) or only the first one.
        ignore_case: Case-insensitive matching.
        css_class: Optional class attribute for every marker.
    """
    try:
        find = FindPattern(pattern=pattern, all_matches=all_matches, ignore_case=ignore_case)
        result, _ = wrap_html(markup, find, WrapRequest(tag=tag, css_class=css_class))
        return result
    except Exception as e:
        return f"Error wrapping matches: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
