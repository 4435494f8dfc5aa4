"""
Module embedder

Inlines an external bash module into a generated script so that it is
sourced, not executed, when the script runs. The module text is fed to
`source /dev/fd/0` through a quoted heredoc, which makes the module's own
"am I being run directly?" test ([[ $0 == "$BASH_SOURCE" ]]) come out false
even when the outer script was run directly.

Usage from a compile-time shell:
    mdsh-embed bashup.events
"""

import os
from pathlib import Path
from typing import Sequence

from .errors import EmbedNotFound
from .quoting import heredoc_delimiterFind, heredoc_make
from .log import LOG


SOURCE_STATEMENT = (
    "{ if [[ $OSTYPE != cygwin && $OSTYPE != msys && -e /dev/fd/0 ]]; "
    "then source /dev/fd/0; else source <(cat); fi; }"
)


def module_find(name: str, search_path: Sequence[str]) -> Path:
    """
    Locate a module file

    Names containing a path separator are used as paths. Other names are
    looked up in each search path directory in order; the current directory
    is only searched if it is listed.

    Args:
        name: Module name or path
        search_path: Ordered directories to search

    Returns:
        Path of the first matching regular file

    Raises:
        EmbedNotFound: If no readable file matches
    """
    if os.sep in name or (os.altsep and os.altsep in name):
        candidate = Path(name)
        if candidate.is_file():
            return candidate
        raise EmbedNotFound(name)

    for directory in search_path:
        if not directory:
            continue
        candidate = Path(directory) / name
        if candidate.is_file():
            LOG(f"Module {name} found at {candidate}", level=3)
            return candidate

    raise EmbedNotFound(name, "not found in search path")


def module_embed(name: str, search_path: Sequence[str]) -> str:
    """
    Build a statement that sources a module's full text in place

    Args:
        name: Module name or path (see module_find)
        search_path: Ordered directories to search

    Returns:
        Bash text: the sourcing statement followed by the module as a
        quoted heredoc

    Raises:
        EmbedNotFound: If the module can't be found or read; nothing is
                       produced in that case
    """
    path = module_find(name, search_path)
    try:
        content = path.read_bytes().decode('utf-8', 'surrogateescape')
    except OSError as e:
        raise EmbedNotFound(name, f"could not be read: {e.strerror}")

    label = path.name.replace("'", "").replace("\n", "")
    delimiter = heredoc_delimiterFind(content, f"# --- EOF {label} ---")
    LOG(f"Embedding {path} ({len(content)} chars)", level=2)
    return heredoc_make(SOURCE_STATEMENT, content, delimiter)
