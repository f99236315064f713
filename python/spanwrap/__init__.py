from importlib.metadata import PackageNotFoundError, version

from spanwrap.errors import (
    EmptyInputError,
    InvalidPatternError,
    SpanwrapError,
    StructuralInconsistencyError,
)
from spanwrap.finder import replace, revert_all
from spanwrap.models import FindPattern, MatchSpan, WrapRequest
from spanwrap.splice.engine import ReplacementLog
from spanwrap.tree.flatten import get_text
from spanwrap.tree.nodes import Container, TextLeaf

try:
    __version__ = version("spanwrap")
except PackageNotFoundError:
    # Running from a source checkout without an installed distribution.
    __version__ = "0.0.0-dev"

__all__ = [
    "replace",
    "revert_all",
    "ReplacementLog",
    "Container",
    "TextLeaf",
    "get_text",
    "FindPattern",
    "MatchSpan",
    "WrapRequest",
    "SpanwrapError",
    "EmptyInputError",
    "InvalidPatternError",
    "StructuralInconsistencyError",
    "__version__",
]
