"""
Command-line helpers for compile-time shells

The sandbox defines two bash functions that call back into mdsh:

    mdsh-embed NAME...                 -> python -m mdsh.helpers embed NAME...
    mdsh-rewrite FN [BEFORE [AFTER]]   -> python -m mdsh.helpers rewrite "$(declare -f FN)" ...

Exit status is 0 on success and 1 when a module or function can't be
found, leaving it to the document to decide whether that is fatal.
"""

import sys
from argparse import ArgumentParser
from typing import List, Optional

from .config import appsettings
from .lib.embed import module_embed
from .lib.errors import EmbedNotFound, RewriteTargetMissing
from .lib.rewriter import function_rewrite


parser = ArgumentParser(
    prog="mdsh-helpers",
    description="Helpers available to mdsh compile-time code",
)
subparsers = parser.add_subparsers(dest="command", required=True)

embed_parser = subparsers.add_parser("embed", help="Print statements that source modules in place")
embed_parser.add_argument("modules", nargs="+", help="Module names or paths")

rewrite_parser = subparsers.add_parser("rewrite", help="Replace a function's body delimiters")
rewrite_parser.add_argument("source", help="Function definition text (e.g. from declare -f)")
rewrite_parser.add_argument("before", nargs="?", default=None, help="Replacement for the opening delimiter")
rewrite_parser.add_argument("after", nargs="?", default=None, help="Replacement for the closing delimiter")


def text_write(text: str) -> None:
    """Write text to stdout, reproducing surrogate-escaped bytes"""
    sys.stdout.buffer.write(text.encode('utf-8', 'surrogateescape'))
    sys.stdout.flush()


def main(argv: Optional[List[str]] = None) -> int:
    options = parser.parse_args(argv)

    if options.command == "embed":
        search_path = appsettings.searchPath_resolve()
        try:
            statements = [module_embed(name, search_path) for name in options.modules]
        except EmbedNotFound as e:
            print(f"mdsh-embed: {e}", file=sys.stderr)
            return 1
        text_write(''.join(statements))
        return 0

    try:
        rewritten = function_rewrite(options.source, options.before, options.after)
    except RewriteTargetMissing as e:
        print(f"mdsh-rewrite: {e}", file=sys.stderr)
        return 1
    text_write(rewritten if rewritten.endswith('\n') else rewritten + '\n')
    return 0


if __name__ == "__main__":
    sys.exit(main())
