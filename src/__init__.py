"""
mdsh - Markdown to bash compiler

Literate programming for shell scripts: fenced code blocks in a markdown
document become a single runnable bash script.
"""

__version__ = "1.0.0"

from .lib import Compiler, hooks_load, MdshError, LOG, state_connectToLogger
from .models import Environment, Template, CompileFn

__all__ = [
    "Compiler",
    "hooks_load",
    "MdshError",
    "Environment",
    "Template",
    "CompileFn",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
