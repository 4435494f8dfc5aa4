"""
Exception hierarchy for mdsh

Fatal errors (ScanError, DirectiveInvocationError) abort a compilation
pass. EmbedNotFound and RewriteTargetMissing are returned to whoever asked
for the embed or rewrite, who decides whether they are fatal.
AdviceTargetMissing is raised to API callers of Environment.advise().
"""

from typing import Optional


class MdshError(Exception):
    """Base class for all mdsh errors"""
    pass


class ScanError(MdshError):
    """Raised when a fenced block is opened and never closed"""

    def __init__(self, message: str, line: int):
        self.line = line
        super().__init__(f"{message} (line {line})")


class DirectiveInvocationError(MdshError):
    """Raised when a compile-time hook or !directive fails"""

    def __init__(
        self,
        language: str,
        line: int,
        status: Optional[int] = None,
        detail: str = "",
    ):
        self.language = language
        self.line = line
        self.status = status
        self.detail = detail
        message = f"compile hook for '{language}' block at line {line} failed"
        if status is not None:
            message += f" with status {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class EmbedNotFound(MdshError):
    """Raised when a module to embed cannot be found or read"""

    def __init__(self, name: str, reason: str = "not found"):
        self.name = name
        super().__init__(f"module '{name}' {reason}")


class RewriteTargetMissing(MdshError):
    """Raised when a function to rewrite is undefined or has no body"""

    def __init__(self, name: str, reason: str = "is not defined"):
        self.name = name
        super().__init__(f"function '{name}' {reason}")


class HookFileError(MdshError):
    """Raised when a hook file cannot be loaded or validated"""
    pass


class AdviceTargetMissing(MdshError):
    """Raised when advice is given for a language with no advisable handler"""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"no template or Python compile hook bound for language '{language}'")
