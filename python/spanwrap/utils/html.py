"""
Bridge between HTML fragments (parsed with lxml) and the spanwrap node tree.
lxml keeps text in .text/.tail slots; here every slot becomes its own TextLeaf.
"""

from typing import Optional, Tuple

import structlog
from lxml import etree
from lxml import html as lxml_html

from spanwrap.finder import replace
from spanwrap.models import WrapRequest
from spanwrap.splice.locator import PatternLike
from spanwrap.tree.nodes import Container, TextLeaf

logger = structlog.get_logger(__name__)

COMMENT_TAG = "#comment"


def _from_element(element) -> Container:
    node = Container(tag=element.tag, attrib=dict(element.attrib))
    if element.text:
        node.append(TextLeaf(element.text))

    for child in element:
        if child.tag is etree.Comment:
            # Kept as an opaque childless node so it contributes no text.
            node.append(Container(tag=COMMENT_TAG, attrib={"text": child.text or ""}))
        elif isinstance(child.tag, str):
            node.append(_from_element(child))
        else:
            logger.debug(f"Dropping unsupported node {child!r}")

        if child.tail:
            node.append(TextLeaf(child.tail))

    return node


def parse_fragment(markup: str, root_tag: str = "div") -> Container:
    """
    Parses an HTML fragment into a Container named root_tag holding its content.
    """
    element = lxml_html.fragment_fromstring(markup, create_parent=root_tag)
    root = _from_element(element)

    # lxml drops leading text that is only whitespace; put it back as the first leaf.
    leading = markup[: len(markup) - len(markup.lstrip())]
    first = root.first_child
    if isinstance(first, TextLeaf):
        kept = first.content[: len(first.content) - len(first.content.lstrip())]
        if leading.endswith(kept):
            leading = leading[: len(leading) - len(kept)]
    if leading:
        root.insert_before(TextLeaf(leading), first)

    return root


def _to_element(node: Container, tag: Optional[str] = None, attrib: Optional[dict] = None):
    element = etree.Element(tag or node.tag, node.attrib if attrib is None else attrib)
    last = None

    for child in node.children:
        if isinstance(child, TextLeaf):
            if last is None:
                element.text = (element.text or "") + child.content
            else:
                last.tail = (last.tail or "") + child.content
        elif child.tag == COMMENT_TAG:
            last = etree.Comment(child.attrib.get("text", ""))
            element.append(last)
        else:
            last = _to_element(child)
            element.append(last)

    return element


def to_html(root: Container, include_root: bool = False) -> str:
    """
    Serializes the tree back to HTML.
    By default returns the inner markup of root (like innerHTML).
    """
    if include_root:
        return lxml_html.tostring(_to_element(root), encoding="unicode")

    # Serialize under a bare <div> so the outer tag can be stripped reliably.
    markup = lxml_html.tostring(_to_element(root, tag="div", attrib={}), encoding="unicode")
    if markup == "<div></div>":
        return ""
    return markup[len("<div>") : -len("</div>")]


def wrap_html(
    markup: str,
    pattern: PatternLike,
    request: Optional[WrapRequest] = None,
    all_matches: bool = False,
) -> Tuple[str, int]:
    """
    Wraps matches inside an HTML fragment.
    Returns (new_markup, number_of_wrapped_matches).
    """
    root = parse_fragment(markup)
    log = replace(pattern, root, request or WrapRequest(), all_matches=all_matches)
    return to_html(root), len(log)
