"""
Top-level find-and-wrap entry points.

    log = replace(r"TEST", root, "x", all_matches=True)
    ...
    revert_all(log)
"""

from typing import List, Optional

import structlog

from spanwrap.errors import EmptyInputError, StructuralInconsistencyError
from spanwrap.models import MatchSpan
from spanwrap.splice.engine import (
    LeafReplacer,
    ReplacementLog,
    SpliceEngine,
    WrapperSpec,
    build_wrapper_factory,
)
from spanwrap.splice.locator import PatternLike, locate_matches
from spanwrap.tree.flatten import flatten_text
from spanwrap.tree.nodes import Container, Node, TextLeaf, iter_tree

logger = structlog.get_logger(__name__)


def _scope_for(root: Node, spans: List[MatchSpan]) -> tuple[Container, List[MatchSpan]]:
    """
    A text leaf cannot be split in place without its parent, so a leaf root is
    searched through its parent with spans shifted to the leaf's offset there.
    """
    if isinstance(root, Container):
        return root, spans

    if root.parent is None:
        raise StructuralInconsistencyError("A detached text leaf cannot be wrapped in place")

    scope = root.parent
    base = 0
    for item in iter_tree(scope):
        if item is root:
            break
        if isinstance(item, TextLeaf):
            base += item.length

    shifted = [MatchSpan(start=s.start + base, end=s.end + base, match=s.match) for s in spans]
    return scope, shifted


def replace(
    pattern: PatternLike,
    root: Node,
    wrapper: WrapperSpec,
    all_matches: bool = False,
    log: Optional[ReplacementLog] = None,
) -> ReplacementLog:
    """
    Wraps the matches of pattern in the concatenated text under root.

    Args:
        pattern: Regex string, compiled regex, or FindPattern (which carries its own mode).
        root: Container (or attached TextLeaf) to search; mutated in place.
        wrapper: Element name, prototype Container, WrapRequest, or a factory taking the match.
        all_matches: Wrap every occurrence instead of only the first.
        log: Existing log to append to. A new one is created when omitted.

    Returns:
        The ReplacementLog holding the undo records; pass it to revert_all().

    Raises:
        InvalidPatternError: The pattern does not compile or yields a zero-length match.
            Nothing is mutated in that case.
        Exception: Whatever the wrapper factory raises. Splices already made by
            this call are rolled back first.
    """
    if log is None:
        log = ReplacementLog()

    factory = build_wrapper_factory(wrapper)

    try:
        text = flatten_text(root)
    except EmptyInputError:
        logger.debug("Nothing to search, tree left untouched")
        return log

    spans = locate_matches(text, pattern, all_matches)
    if not spans:
        logger.debug("No matches, tree left untouched")
        return log

    scope, spans = _scope_for(root, spans)
    engine = SpliceEngine(scope, spans, LeafReplacer(factory, log))
    recorded = len(log)
    try:
        count = engine.run()
    except Exception:
        # Undo this call's splices so the caller gets the tree back unchanged.
        undone = log.rollback(recorded)
        logger.warning(f"Replacement failed, rolled back {undone} splice(s)")
        raise
    logger.info(f"Wrapped {count} match(es)")
    return log


def revert_all(log: ReplacementLog) -> int:
    """Undoes every replacement recorded in log, then clears it. Returns the number undone."""
    return log.revert()
