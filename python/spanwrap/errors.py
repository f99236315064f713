class SpanwrapError(Exception):
    """Base class for every error raised by spanwrap."""


class EmptyInputError(SpanwrapError):
    """The tree carries no text, so no match is possible."""


class InvalidPatternError(SpanwrapError):
    """
    The pattern cannot be used to wrap text.
    Raised for zero-length matches and for patterns that fail to compile.
    Always raised before the tree is touched.
    """


class StructuralInconsistencyError(SpanwrapError):
    """
    The traversal lost track of the tree (e.g. ran out of leaves while a match
    was still open). Indicates a bug or concurrent mutation; never retried.
    """
