from typing import List

import structlog

from spanwrap.errors import EmptyInputError
from spanwrap.tree.nodes import Node, TextLeaf, iter_tree

logger = structlog.get_logger(__name__)


def get_text(node: Node) -> str:
    """
    Concatenates the text of every TextLeaf under node in document order.
    Containers contribute nothing of their own and no separators are added,
    so offsets into the result line up with the splice engine's counting.
    """
    parts: List[str] = []
    for item in iter_tree(node):
        if isinstance(item, TextLeaf):
            parts.append(item.content)
    return "".join(parts)


def flatten_text(node: Node) -> str:
    text = get_text(node)
    if not text:
        raise EmptyInputError("Tree contains no text to search")
    logger.debug(f"Flattened {len(text)} characters")
    return text
