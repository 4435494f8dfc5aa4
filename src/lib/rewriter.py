"""
Function body rewriter for bash function definitions

Locates the outermost body delimiters of a function definition and swaps
them for other text. Two uses:

1. Template extraction: the body of an mdsh-lang-X function becomes the
   run-time wrapper for blocks of language X.
2. Advice: code can be inserted right inside a handler's entry or exit by
   replacing "{" with "{ before;" and "}" with "after; }".

Accepted layouts:
    name() { body; }
    function name { body; }
    name ()
    {
        body
    }                    (declare -f output)
    name() ( body )      (subshell body)

Usage from a compile-time shell:
    eval "$(mdsh-rewrite fn '{ echo enter;' 'echo exit; }')"
"""

import re
from typing import Optional, Tuple

from .errors import RewriteTargetMissing


_HEADER = re.compile(
    r'^\s*(?:(?P<keyword>function)\s+)?'
    r'(?P<name>[^\s(){}|&;<>]+)'
    r'\s*(?P<parens>\(\s*\))?\s*'
)

_CLOSERS = {'{': '}', '(': ')'}


def function_locate(source: str) -> Tuple[str, int, int]:
    """
    Find a function's name and the positions of its body delimiters

    Args:
        source: Full text of one bash function definition

    Returns:
        (name, open_index, close_index)

    Raises:
        RewriteTargetMissing: If the text is not a recognizable definition
    """
    match = _HEADER.match(source)
    if not match or not (match.group('keyword') or match.group('parens')):
        raise RewriteTargetMissing(
            source.strip().split('\n', 1)[0] or '<empty>',
            "is not a function definition",
        )

    name = match.group('name')
    open_index = match.end()
    opener = source[open_index:open_index + 1]
    if opener not in _CLOSERS:
        raise RewriteTargetMissing(name, "has no recognizable body delimiters")

    close_index = source.rfind(_CLOSERS[opener])
    if close_index <= open_index:
        raise RewriteTargetMissing(name, "has an unterminated body")

    return name, open_index, close_index


def function_name(source: str) -> str:
    """Return the name declared by a function definition"""
    return function_locate(source)[0]


def function_body(source: str) -> str:
    """
    Return the text between a function's body delimiters, stripped

    Example:
        >>> function_body("mdsh-lang-py() { python3; }")
        'python3;'
    """
    _, open_index, close_index = function_locate(source)
    return source[open_index + 1:close_index].strip()


def function_rewrite(
    source: str, before: Optional[str] = None, after: Optional[str] = None
) -> str:
    """
    Replace the outermost body delimiters of a function definition

    Args:
        source: Full text of one bash function definition
        before: Replacement for the opening delimiter (kept if None)
        after: Replacement for the closing delimiter (kept if None)

    Returns:
        The rewritten function text

    Raises:
        RewriteTargetMissing: If the definition or its delimiters can't be found

    Example:
        >>> function_rewrite("f() { echo hi; }", "{ echo in;", "echo out; }")
        'f() { echo in; echo hi; echo out; }'
    """
    _, open_index, close_index = function_locate(source)
    opener = source[open_index]
    closer = source[close_index]
    return (
        source[:open_index]
        + (opener if before is None else before)
        + source[open_index + 1:close_index]
        + (closer if after is None else after)
        + source[close_index + 1:]
    )
