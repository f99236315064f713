import re
from typing import List, Union

import structlog

from spanwrap.errors import InvalidPatternError
from spanwrap.models import FindPattern, MatchSpan

logger = structlog.get_logger(__name__)

PatternLike = Union[str, re.Pattern, FindPattern]


def resolve_pattern(pattern: PatternLike, all_matches: bool = False) -> tuple[re.Pattern, bool]:
    """
    Normalizes the accepted pattern forms into (compiled_regex, all_matches).
    A FindPattern carries its own mode and overrides the argument.
    """
    if isinstance(pattern, FindPattern):
        return pattern.compile(), pattern.all_matches
    if isinstance(pattern, re.Pattern):
        return pattern, all_matches
    if isinstance(pattern, str):
        return FindPattern(pattern=pattern).compile(), all_matches
    raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")


def locate_matches(text: str, pattern: PatternLike, all_matches: bool = False) -> List[MatchSpan]:
    """
    Returns the ordered, non-overlapping match spans of pattern over text.

    The whole list is built before anything is returned, so a zero-length
    match anywhere aborts the operation before a caller can mutate the tree.
    """
    regex, all_matches = resolve_pattern(pattern, all_matches)

    if all_matches:
        candidates = list(regex.finditer(text))
    else:
        # First occurrence: use the engine's own position, not a re-search of the matched text.
        first = regex.search(text)
        candidates = [first] if first else []

    spans: List[MatchSpan] = []
    for m in candidates:
        if m.end() == m.start():
            raise InvalidPatternError(
                f"Pattern {regex.pattern!r} produced a zero-length match at offset {m.start()}; "
                "zero-length matches cannot be wrapped"
            )
        spans.append(MatchSpan(start=m.start(), end=m.end(), match=m))

    logger.debug(f"Located {len(spans)} match(es) for {regex.pattern!r}")
    return spans
