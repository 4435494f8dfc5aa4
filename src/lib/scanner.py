"""
Block scanner for markdown documents

Finds the code blocks of a document in a single line-oriented pass.

Recognized shapes:
1. Fenced: a line whose stripped text starts with ``` or ~~~ (optionally
   followed by a tag), closed by the next line consisting only of the same
   fence character, repeated at least as many times.
2. Indented: contiguous lines indented by four spaces or a tab, outside any
   fence.

Both shapes are yielded as Block records. Only fenced blocks with a
three-character fence and a non-empty tag are translated into script code
(see Block.emittable); wider fences and indented blocks are documentation.

Example:
    >>> blocks = list(blocks_scan("text\\n```shell\\necho hi\\n```\\n"))
    >>> blocks[0].tag, blocks[0].content
    ('shell', 'echo hi\\n')
"""

import re
from typing import Iterator, List, Optional

from ..models.blocks import Block, FenceKind
from .errors import ScanError


FENCE_OPEN = re.compile(r'^(`{3,}|~{3,})(.*)$', re.DOTALL)

# Lines end at \n only; these are the blanks trimmed around fences
LINE_BLANKS = ' \t\r\n'


def fence_match(line: str) -> Optional[re.Match[str]]:
    """
    Match a fence opener against a line's stripped text

    Returns:
        Match with group(1) = fence run and group(2) = rest of line,
        or None if the line is not a fence
    """
    return FENCE_OPEN.match(line.strip(LINE_BLANKS))


def fence_closes(line: str, char: str, width: int) -> bool:
    """
    Check whether a line terminates a fence of the given character and width

    The stripped line must consist only of `char`, at least `width` times.
    Fences of the other character never close the block.
    """
    stripped = line.strip(LINE_BLANKS)
    return len(stripped) >= width and stripped == char * len(stripped)


def indented_is(line: str) -> bool:
    """True for a non-blank line indented by four spaces or a tab"""
    return (line.startswith('    ') or line.startswith('\t')) and bool(line.strip(LINE_BLANKS))


def blocks_scan(text: str) -> Iterator[Block]:
    """
    Scan document text and yield its blocks in document order

    Each call starts a new scan from the top of the text.

    Args:
        text: Full document text

    Yields:
        Block records, fenced and indented

    Raises:
        ScanError: If a fence is still open at the end of the document
    """
    lines = [line for line in re.split(r'(?<=\n)', text) if line]

    fence_char = ''
    fence_width = 0
    fence_tag = ''
    fence_raw = ''
    fence_start = 0
    body: List[str] = []

    indent_start = 0
    indent_body: List[str] = []

    for number, line in enumerate(lines, start=1):
        if fence_width:
            if fence_closes(line, fence_char, fence_width):
                yield Block(
                    tag=fence_tag,
                    raw_tag=fence_raw,
                    content=''.join(body),
                    fence_kind=FenceKind.FENCED,
                    fence_width=fence_width,
                    start_line=fence_start,
                )
                fence_width = 0
                body = []
            else:
                body.append(line)
            continue

        match = fence_match(line)
        if match:
            if indent_body:
                yield indented_block(indent_body, indent_start)
                indent_body = []
            fence_char = match.group(1)[0]
            fence_width = len(match.group(1))
            fence_raw = match.group(2)
            fence_tag = fence_raw.strip(LINE_BLANKS)
            fence_start = number
            continue

        if indented_is(line):
            if not indent_body:
                indent_start = number
            indent_body.append(line)
            continue

        if indent_body:
            yield indented_block(indent_body, indent_start)
            indent_body = []

    if fence_width:
        raise ScanError(
            f"unterminated {fence_char * fence_width} fence", fence_start
        )

    if indent_body:
        yield indented_block(indent_body, indent_start)


def indented_block(lines: List[str], start_line: int) -> Block:
    """Build an INDENTED Block from its collected lines"""
    return Block(
        tag='',
        raw_tag='',
        content=''.join(lines),
        fence_kind=FenceKind.INDENTED,
        fence_width=0,
        start_line=start_line,
    )
