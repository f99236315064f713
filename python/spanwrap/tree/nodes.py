"""
Minimal node tree used by the matcher and splice engine.

Two variants only: TextLeaf carries characters, Container carries an ordered
list of children. Parent links are owned by Container, so every attach goes
through its helpers and a node can never end up under two parents.
Nodes compare by identity; use snapshot() for structural comparisons.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from spanwrap.errors import StructuralInconsistencyError


@dataclass(eq=False)
class Node:
    parent: Optional["Container"] = field(default=None, init=False, repr=False)

    @property
    def index(self) -> int:
        if self.parent is None:
            return -1
        return self.parent.index_of(self)

    @property
    def next_sibling(self) -> Optional["Node"]:
        if self.parent is None:
            return None
        siblings = self.parent.children
        i = self.parent.index_of(self) + 1
        return siblings[i] if i < len(siblings) else None

    @property
    def previous_sibling(self) -> Optional["Node"]:
        if self.parent is None:
            return None
        i = self.parent.index_of(self)
        return self.parent.children[i - 1] if i > 0 else None

    def detach(self) -> "Node":
        if self.parent is not None:
            self.parent.remove_child(self)
        return self

    def snapshot(self) -> Tuple:
        raise NotImplementedError


@dataclass(eq=False)
class TextLeaf(Node):
    content: str = ""

    @property
    def length(self) -> int:
        return len(self.content)

    def snapshot(self) -> Tuple:
        return ("#text", self.content)


@dataclass(eq=False)
class Container(Node):
    tag: str = "div"
    attrib: Dict[str, str] = field(default_factory=dict)
    children: List[Node] = field(default_factory=list)

    def __post_init__(self):
        initial = self.children
        self.children = []
        for child in initial:
            self.append(child)

    @property
    def first_child(self) -> Optional[Node]:
        return self.children[0] if self.children else None

    def index_of(self, child: Node) -> int:
        # Identity, not equality: two leaves with the same text are still distinct nodes.
        for i, candidate in enumerate(self.children):
            if candidate is child:
                return i
        raise StructuralInconsistencyError(f"{child!r} is not a child of <{self.tag}>")

    def append(self, child: Node) -> Node:
        child.detach()
        child.parent = self
        self.children.append(child)
        return child

    def insert_before(self, child: Node, reference: Optional[Node]) -> Node:
        """Inserts child before reference; appends when reference is None."""
        if reference is None:
            return self.append(child)
        if reference is child:
            return child
        child.detach()
        child.parent = self
        self.children.insert(self.index_of(reference), child)
        return child

    def remove_child(self, child: Node) -> Node:
        del self.children[self.index_of(child)]
        child.parent = None
        return child

    def replace_child(self, new_nodes: List[Node], old: Node) -> None:
        """Puts new_nodes, in order, where old was and removes old."""
        for node in new_nodes:
            self.insert_before(node, old)
        self.remove_child(old)

    def clone(self) -> "Container":
        """Shallow copy: same tag and attributes, no children, no parent."""
        return Container(tag=self.tag, attrib=dict(self.attrib))

    def snapshot(self) -> Tuple:
        return (self.tag, tuple(sorted(self.attrib.items())), tuple(c.snapshot() for c in self.children))


AnyNode = Union[TextLeaf, Container]


def iter_tree(root: Node) -> Iterator[Node]:
    """Depth-first, pre-order walk of root and its descendants (explicit stack)."""
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, Container):
            stack.extend(reversed(node.children))


def next_in_order(node: Node, root: Node, descend: bool = True) -> Optional[Node]:
    """
    Pre-order successor of node without leaving root's subtree.
    With descend=False the children of node are skipped (used to step over
    a freshly inserted wrapper).
    """
    if descend and isinstance(node, Container) and node.children:
        return node.children[0]

    while node is not root:
        sibling = node.next_sibling
        if sibling is not None:
            return sibling
        if node.parent is None:
            raise StructuralInconsistencyError(f"{node!r} was detached from the tree during traversal")
        node = node.parent

    return None
