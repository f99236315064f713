import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional, Sequence, Union

import structlog

from spanwrap.errors import StructuralInconsistencyError
from spanwrap.models import MatchSpan, WrapRequest
from spanwrap.tree.nodes import Container, Node, TextLeaf, next_in_order

logger = structlog.get_logger(__name__)

WrapperFactory = Callable[[re.Match], Container]
WrapperSpec = Union[str, Container, WrapRequest, WrapperFactory]


def build_wrapper_factory(wrapper: WrapperSpec) -> WrapperFactory:
    """
    Turns a wrapper spec into a factory returning a fresh Container per call.

    Accepts an element name, a prototype Container, a WrapRequest, or a
    callable receiving the regex match. Whatever the source, the result is a
    shallow clone, so a factory that hands back one shared node stays safe.
    """
    if isinstance(wrapper, str):
        prototype = Container(tag=wrapper)
        return lambda match: prototype.clone()

    if isinstance(wrapper, WrapRequest):
        prototype = wrapper.prototype()
        return lambda match: prototype.clone()

    if isinstance(wrapper, Container):
        return lambda match: wrapper.clone()

    if callable(wrapper):

        def factory(match: re.Match) -> Container:
            node = wrapper(match)
            if not isinstance(node, Container):
                raise TypeError(f"Wrapper factory must return a Container, got {type(node).__name__}")
            return node.clone()

        return factory

    raise TypeError(f"Unsupported wrapper spec: {type(wrapper).__name__}")


class ReplacementLog:
    """
    Undo log for one or more replace() calls.
    Each splice records a closure restoring the leaves it replaced.
    """

    def __init__(self):
        self._records: List[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._records)

    def record(self, undo: Callable[[], None]):
        self._records.append(undo)

    def rollback(self, keep: int) -> int:
        """Undoes records past the first `keep`, most recent first. Returns the number undone."""
        count = 0
        while len(self._records) > keep:
            # Popped before running so a failing undo is not retried on the next revert.
            undo = self._records.pop()
            undo()
            count += 1
        return count

    def revert(self) -> int:
        """
        Undoes every recorded splice and clears the log.
        Most recent first: a later match may have split a fragment an earlier
        one produced, and that fragment has to be whole again before the
        earlier record restores its original leaf.
        """
        count = self.rollback(0)
        if count:
            logger.info(f"Reverted {count} replacement(s)")
        return count


def _restore_leaf(original: TextLeaf, pieces: List[Node]):
    parent = pieces[0].parent
    if parent is None:
        raise StructuralInconsistencyError("Cannot revert: replacement nodes are no longer attached")
    parent.insert_before(original, pieces[0])
    for piece in pieces:
        piece.detach()


def _unwrap(wrapper: Container):
    parent = wrapper.parent
    if parent is None:
        raise StructuralInconsistencyError("Cannot revert: wrapper is no longer attached")
    for child in list(wrapper.children):
        parent.insert_before(child, wrapper)
    parent.remove_child(wrapper)


@dataclass
class SpliceRange:
    start_node: TextLeaf
    start_index: int
    end_node: TextLeaf
    end_index: int
    inner_nodes: List[TextLeaf]
    match: re.Match


class LeafReplacer:
    """
    Performs the tree surgery for one resolved range and logs its inverse.
    Returns the node that replaced the end leaf; traversal resumes after it.
    """

    def __init__(self, factory: WrapperFactory, log: ReplacementLog):
        self.factory = factory
        self.log = log

    def __call__(self, rng: SpliceRange) -> Container:
        if rng.start_node is rng.end_node:
            return self._replace_within_leaf(rng)
        return self._replace_across_leaves(rng)

    def _wrap_text(self, text: str, match: re.Match) -> Container:
        wrapper = self.factory(match)
        wrapper.append(TextLeaf(text))
        return wrapper

    def _replace_within_leaf(self, rng: SpliceRange) -> Container:
        node = rng.start_node
        parent = node.parent
        if parent is None:
            raise StructuralInconsistencyError("Matched text leaf has no parent to splice into")

        pieces: List[Node] = []
        if rng.start_index > 0:
            pieces.append(TextLeaf(node.content[: rng.start_index]))
        wrapper = self._wrap_text(rng.match.group(0), rng.match)
        pieces.append(wrapper)
        if rng.end_index < node.length:
            pieces.append(TextLeaf(node.content[rng.end_index :]))

        parent.replace_child(pieces, node)
        self.log.record(lambda: _restore_leaf(node, pieces))
        return wrapper

    def _replace_across_leaves(self, rng: SpliceRange) -> Container:
        start, end = rng.start_node, rng.end_node
        if start.parent is None or end.parent is None:
            raise StructuralInconsistencyError("Matched text leaf has no parent to splice into")

        # Every wrapper is built before the tree is touched, so a failing factory leaves it intact.
        start_wrapper = self._wrap_text(start.content[rng.start_index :], rng.match)
        end_wrapper = self._wrap_text(end.content[: rng.end_index], rng.match)
        inner_wrappers = [self.factory(rng.match) for _ in rng.inner_nodes]

        # 1. Start leaf: [before] + wrapper holding the tail of the leaf
        start_pieces: List[Node] = []
        if rng.start_index > 0:
            start_pieces.append(TextLeaf(start.content[: rng.start_index]))
        start_pieces.append(start_wrapper)
        start.parent.replace_child(start_pieces, start)

        # 2. End leaf: wrapper holding the head of the leaf + [after]
        end_pieces: List[Node] = [end_wrapper]
        if rng.end_index < end.length:
            end_pieces.append(TextLeaf(end.content[rng.end_index :]))
        end.parent.replace_child(end_pieces, end)

        # 3. Inner leaves: one wrapper each, so every leaf stays under its own ancestors
        for leaf, wrapper in zip(rng.inner_nodes, inner_wrappers):
            leaf.parent.insert_before(wrapper, leaf)
            wrapper.append(leaf)

        def undo():
            for wrapper in inner_wrappers:
                _unwrap(wrapper)
            _restore_leaf(end, end_pieces)
            _restore_leaf(start, start_pieces)

        self.log.record(undo)
        return end_wrapper


class SpliceState(Enum):
    SEEKING = "SEEKING"
    START_FOUND = "START_FOUND"
    RESOLVED = "RESOLVED"
    DONE = "DONE"


@dataclass
class Cursor:
    node: Optional[Node]
    offset: int = 0
    start_node: Optional[TextLeaf] = None
    start_index: int = 0
    end_node: Optional[TextLeaf] = None
    end_index: int = 0
    inner_nodes: List[TextLeaf] = field(default_factory=list)

    def reset(self):
        self.start_node = None
        self.start_index = 0
        self.end_node = None
        self.end_index = 0
        self.inner_nodes = []


class SpliceEngine:
    """
    Single depth-first pass over root that maps each span back onto the
    leaves it covers and splices wrappers in as soon as both ends are known.

    Offsets count characters of TextLeaf content in document order, exactly
    as get_text() does. Spans must be sorted and non-overlapping.
    """

    def __init__(self, root: Container, spans: Sequence[MatchSpan], replacer: Callable[[SpliceRange], Container]):
        if not isinstance(root, Container):
            raise TypeError("SpliceEngine needs a Container root")
        self.root = root
        self.replacer = replacer
        self.pending: Deque[MatchSpan] = deque(spans)
        self.cursor = Cursor(node=root)
        self.splices = 0
        self.current: Optional[MatchSpan] = None
        self.state = SpliceState.DONE
        self._next_span()

    def _next_span(self):
        if self.pending:
            self.current = self.pending.popleft()
            self.state = SpliceState.SEEKING
        else:
            self.current = None
            self.state = SpliceState.DONE

    def run(self) -> int:
        while self.state is not SpliceState.DONE:
            self.step()
        return self.splices

    def step(self):
        node = self.cursor.node
        if node is None:
            raise StructuralInconsistencyError(
                f"Reached the end of the tree with span [{self.current.start}, {self.current.end}) unresolved"
            )

        if isinstance(node, TextLeaf):
            self._consume_leaf(node)

        if self.state is SpliceState.RESOLVED:
            anchor = self._splice()
            if self.state is not SpliceState.DONE:
                # Step over the wrapper: its text is already accounted for.
                self.cursor.node = next_in_order(anchor, self.root, descend=False)
        else:
            self.cursor.node = next_in_order(node, self.root)

    def _consume_leaf(self, leaf: TextLeaf):
        c = self.cursor
        span = self.current
        reach = c.offset + leaf.length

        if c.end_node is None and reach >= span.end:
            c.end_node = leaf
            c.end_index = span.end - c.offset
        elif c.start_node is not None:
            c.inner_nodes.append(leaf)

        if c.start_node is None and reach > span.start:
            c.start_node = leaf
            c.start_index = span.start - c.offset

        c.offset = reach

        if c.end_node is not None:
            if c.start_node is None:
                raise StructuralInconsistencyError(f"End of span [{span.start}, {span.end}) found before its start")
            self.state = SpliceState.RESOLVED
        elif c.start_node is not None:
            self.state = SpliceState.START_FOUND

    def _splice(self) -> Container:
        c = self.cursor
        rng = SpliceRange(
            start_node=c.start_node,
            start_index=c.start_index,
            end_node=c.end_node,
            end_index=c.end_index,
            inner_nodes=c.inner_nodes,
            match=self.current.match,
        )
        anchor = self.replacer(rng)
        leaves = 1 if rng.start_node is rng.end_node else len(rng.inner_nodes) + 2
        logger.debug(f"Spliced span [{self.current.start}, {self.current.end}) across {leaves} leaf/leaves")

        # Rewind to the end of the match: the rest of the end leaf is visited again as its own fragment.
        c.offset -= c.end_node.length - c.end_index
        self.splices += 1
        c.reset()
        self._next_span()
        return anchor
