import re
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel, Field

from spanwrap.errors import InvalidPatternError
from spanwrap.tree.nodes import Container


@dataclass
class MatchSpan:
    """Half-open [start, end) range over the flattened text, plus the regex match."""

    start: int
    end: int
    match: re.Match

    @property
    def text(self) -> str:
        return self.match.group(0)


class FindPattern(BaseModel):
    """
    A regular expression plus the flags that control how it is applied.
    """

    pattern: str = Field(..., description="Regular expression (Python `re` syntax) to search for.")
    all_matches: bool = Field(
        False,
        description="Wrap every non-overlapping occurrence instead of only the first one.",
    )
    ignore_case: bool = Field(False, description="Case-insensitive matching.")
    multiline: bool = Field(False, description="`^` and `$` match at line boundaries.")
    dotall: bool = Field(False, description="`.` also matches newlines.")

    def flags(self) -> int:
        value = 0
        if self.ignore_case:
            value |= re.IGNORECASE
        if self.multiline:
            value |= re.MULTILINE
        if self.dotall:
            value |= re.DOTALL
        return value

    def compile(self) -> re.Pattern:
        try:
            return re.compile(self.pattern, self.flags())
        except re.error as e:
            raise InvalidPatternError(f"Invalid pattern {self.pattern!r}: {e}") from e


class WrapRequest(BaseModel):
    """
    Describes the marker element placed around matched text.
    """

    tag: str = Field("mark", description="Element name of the wrapper, e.g. 'mark', 'em', 'span'.")
    attributes: Dict[str, str] = Field(default_factory=dict, description="Attributes copied onto every wrapper.")
    css_class: Optional[str] = Field(None, description="Shortcut for the `class` attribute.")

    def prototype(self) -> Container:
        attrib = dict(self.attributes)
        if self.css_class:
            attrib["class"] = self.css_class
        return Container(tag=self.tag, attrib=attrib)
