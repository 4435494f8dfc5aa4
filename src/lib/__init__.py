"""
mdsh - Markdown to bash compiler

Literate programming for shell scripts: fenced code blocks in a markdown
document become a single runnable bash script.
"""

__version__ = "1.0.0"

from .compiler import Compiler
from .hookfile import hooks_load
from .errors import (
    MdshError,
    ScanError,
    DirectiveInvocationError,
    EmbedNotFound,
    RewriteTargetMissing,
    HookFileError,
    AdviceTargetMissing,
)
from .log import LOG, state_connectToLogger

__all__ = [
    "Compiler",
    "hooks_load",
    "MdshError",
    "ScanError",
    "DirectiveInvocationError",
    "EmbedNotFound",
    "RewriteTargetMissing",
    "HookFileError",
    "AdviceTargetMissing",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
