"""
Loguru logging, gated by the verbosity of the current run.

LOG() looks up the verbosity bound to the current context, so library code
logs without having a ProgramState passed in. The CLI binds its state once
with state_connectToLogger(); library callers can bind a plain level with
verbosity_bind().

    LOG("Compiling document to bash...", level=1)   # default
    LOG("Line 12: 'python' -> template", level=2)   # -v
    LOG("Compile-time shell #3 ...", level=3)       # -vv
"""

import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from loguru import logger

# Object with a `verbosity` attribute, or None (logging off)
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{module}.{function}</cyan>:<cyan>{line}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Make a state's verbosity the threshold for LOG() in this context.

    Args:
        state: Anything with a `verbosity` attribute, normally a ProgramState
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Emit a message if the bound verbosity is at least `level`.

    Level 1 goes out as INFO, deeper levels as DEBUG. Nothing is logged
    when no verbosity is bound.

    Args:
        message: Text to log
        level: 1 normal, 2 verbose, 3 trace
        **kwargs: Passed to loguru
    """
    bound = _program_state.get()
    verbosity = getattr(bound, 'verbosity', None)
    if verbosity is None or verbosity < level:
        return
    if level <= 1:
        logger.info(message, **kwargs)
    else:
        logger.debug(message, **kwargs)


@dataclass
class _VerbosityOnly:
    verbosity: int


@contextmanager
def verbosity_bind(verbosity: Optional[int]) -> Iterator[None]:
    """
    Bind a verbosity level for the duration of a with-block.

    None leaves the current binding alone.
    """
    if verbosity is None:
        yield
        return
    token = _program_state.set(_VerbosityOnly(verbosity))
    try:
        yield
    finally:
        _program_state.reset(token)
