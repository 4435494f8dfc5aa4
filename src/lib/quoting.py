"""
Bash quoting and escaping primitives

Every piece of block content that ends up in generated code outside a
heredoc body goes through literal_quote(). The helpers here are the only
places that know bash's quoting rules.
"""

import re
from typing import Iterable, Union


# Characters that force ANSI-C $'...' quoting
_NEEDS_ANSI = re.compile(r"[\x00-\x1f\x7f'\udc80-\udcff]")

_ANSI_ESCAPES = {
    '\\': '\\\\',
    "'": "\\'",
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
}

_NON_IDENTIFIER = re.compile(r'[^A-Za-z0-9_]')


def literal_quote(text: Union[str, bytes]) -> str:
    """
    Quote text as a single bash word that expands to exactly that text

    Plain text is single-quoted. Text containing single quotes, control
    characters or undecodable bytes is written with ANSI-C quoting, where
    every such character becomes an escape sequence. Bytes are decoded as
    UTF-8 with surrogateescape so invalid sequences are reproduced byte for
    byte.

    Args:
        text: Text (or raw bytes) to quote

    Returns:
        Bash word, e.g. 'abc' or $'it\\'s\\n'

    Raises:
        ValueError: If the text contains NUL, which bash strings cannot hold

    Example:
        >>> literal_quote('')
        "''"
        >>> literal_quote('a b')
        "'a b'"
        >>> literal_quote("it's\\n")
        "$'it\\\\'s\\\\n'"
    """
    if isinstance(text, bytes):
        text = text.decode('utf-8', 'surrogateescape')

    if '\x00' in text:
        raise ValueError("NUL characters cannot be represented in a bash string")

    if not _NEEDS_ANSI.search(text):
        return f"'{text}'"

    out = []
    for char in text:
        if char in _ANSI_ESCAPES:
            out.append(_ANSI_ESCAPES[char])
        elif '\udc80' <= char <= '\udcff':
            out.append(f'\\x{ord(char) - 0xdc00:02x}')
        elif ord(char) < 0x20 or char == '\x7f':
            out.append(f'\\x{ord(char):02x}')
        else:
            out.append(char)
    return "$'" + ''.join(out) + "'"


def words_quote(words: Iterable[str]) -> str:
    """Quote each word with literal_quote() and join them with spaces"""
    return ' '.join(literal_quote(word) for word in words)


def heredoc_delimiterFind(content: str, base: str) -> str:
    """
    Choose a heredoc delimiter that no line of the content equals

    Tries base, then base_1, base_2, ... The delimiter is always written
    quoted (<<'DELIM') so the heredoc body is never interpolated.

    Args:
        content: Text that will form the heredoc body
        base: Preferred delimiter

    Returns:
        A delimiter safe to use with this content

    Example:
        >>> heredoc_delimiterFind("a\\n```\\n", "```")
        '```_1'
    """
    lines = set(content.split('\n'))
    candidate = base
    suffix = 0
    while candidate in lines:
        suffix += 1
        candidate = f'{base}_{suffix}'
    return candidate


def heredoc_make(head: str, content: str, delimiter: str) -> str:
    """
    Build a statement that feeds content to `head` through a quoted heredoc

    A missing final newline is supplied so the delimiter sits on its own
    line.

    Args:
        head: Statement the heredoc redirection is attached to
        content: Heredoc body
        delimiter: Result of heredoc_delimiterFind()

    Returns:
        Bash text ending in a newline
    """
    if "'" in delimiter or "\n" in delimiter:
        raise ValueError(f"unusable heredoc delimiter: {delimiter!r}")
    if content and not content.endswith('\n'):
        content += '\n'
    return f"{head} <<'{delimiter}'\n{content}{delimiter}\n"


def language_sanitize(language: str) -> str:
    """
    Map a language name to a bash identifier fragment

    Each character outside [A-Za-z0-9_] becomes an underscore. The mapping
    is deterministic but not injective: "c++" and "c--" both give "c__".

    Example:
        >>> language_sanitize("objective-c")
        'objective_c'
    """
    return _NON_IDENTIFIER.sub('_', language)
