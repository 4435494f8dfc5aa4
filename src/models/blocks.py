"""
Document block models

Type-safe structures produced by the block scanner and the tag parser.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional


class FenceKind(Enum):
    """
    Shapes of code block recognized in a document

    Only FENCED blocks can become code; INDENTED blocks are reserved for
    documentation and example-runner tooling.
    """
    FENCED = "fenced"       # ```lang ... ``` or ~~~lang ... ~~~
    INDENTED = "indented"   # four-space or tab indented run


class DirectiveKind(Enum):
    """Inline command directives carried on a tag line"""
    RUN = "run"             # lang |code  - code runs on the block at run time
    COMPILE = "compile"     # lang !code  - code runs on the block at compile time


@dataclass(frozen=True)
class Block:
    """
    A code block found in a document

    Attributes:
        tag: Normalized tag (raw tag with surrounding whitespace removed)
        raw_tag: Text following the fence on its opening line
        content: Block text between the fences, line endings included
        fence_kind: FENCED or INDENTED
        fence_width: Number of fence characters on the opening line
                     (0 for indented blocks)
        start_line: 1-based line number of the opening fence

    Example:
        For the document "```json\\n{}\\n```\\n":
        Block(tag="json", raw_tag="json", content="{}\\n",
              fence_kind=FenceKind.FENCED, fence_width=3, start_line=1)
    """
    tag: str
    raw_tag: str
    content: str
    fence_kind: FenceKind
    fence_width: int
    start_line: int

    @property
    def emittable(self) -> bool:
        """True if this block is translated into script code"""
        return (
            self.fence_kind is FenceKind.FENCED
            and self.fence_width == 3
            and bool(self.tag)
        )


@dataclass(frozen=True)
class TagInfo:
    """
    Parsed form of a block's tag line

    Attributes:
        language: First whitespace-delimited token, case preserved
        directive: RUN or COMPILE if the second token starts with | or !
        code: Directive code, everything after the marker (empty if none)
        words: Tokens after the language when there is no directive

    Example:
        tag_parse('yaml !emitConvertedJSON "$1"')
        TagInfo(language="yaml", directive=DirectiveKind.COMPILE,
                code='emitConvertedJSON "$1"', words=[])
    """
    language: str
    directive: Optional[DirectiveKind] = None
    code: str = ""
    words: List[str] = field(default_factory=list)
