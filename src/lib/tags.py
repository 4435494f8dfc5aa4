"""
Tag line parser

Splits the text after an opening fence into a language and an optional
inline command directive:

    python              -> language "python"
    json |jq .          -> language "json", RUN "jq ."
    yaml !conv "$1" x   -> language "yaml", COMPILE 'conv "$1" x'
    shell @main         -> language "shell", words ["@main"]

Only the second token is checked for the | or ! marker. Everything after
the marker, pipes and substitutions included, is kept verbatim as the
directive's code.
"""

import re

from ..models.blocks import DirectiveKind, TagInfo


_MARKERS = {
    '|': DirectiveKind.RUN,
    '!': DirectiveKind.COMPILE,
}

# language, separating whitespace, rest of line
_TAG_SPLIT = re.compile(r'^(\S+)(?:\s+(.*))?$', re.DOTALL)


def tag_parse(raw_tag: str) -> TagInfo:
    """
    Parse a block's tag line into a TagInfo

    Args:
        raw_tag: Text following the opening fence

    Returns:
        TagInfo; language is "" when the tag is blank
    """
    match = _TAG_SPLIT.match(raw_tag.strip())
    if not match:
        return TagInfo(language='')

    language = match.group(1)
    rest = match.group(2) or ''
    if not rest:
        return TagInfo(language=language)

    directive = _MARKERS.get(rest[0])
    if directive is not None:
        return TagInfo(language=language, directive=directive, code=rest[1:])

    return TagInfo(language=language, words=rest.split())
