"""
Hook and policy models

An Environment is the explicit dispatch table used to translate blocks:
per-language Templates and compile hooks, an optional fallback, and
optional file header/footer producers. Policies are the resolved outcome
of looking a block up in that table.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Union

from .blocks import TagInfo


@dataclass(frozen=True)
class Template:
    """
    Run-time wrapper body for a language

    The body becomes a { ... } group whose stdin is the block content.

    Attributes:
        body: Bash statements that read the block from stdin
        name: Where the template came from (for diagnostics)
    """
    body: str
    name: str = ""

    def advised(self, before: str = "", after: str = "") -> "Template":
        """Return a new Template with code run immediately inside entry/exit"""
        parts = [part for part in (before, self.body, after) if part]
        return Template(body="\n".join(parts), name=self.name)


@dataclass(frozen=True)
class CompileFn:
    """
    Python compile hook

    Attributes:
        fn: Callable (content, tag) -> generated bash text
        name: Label used in diagnostics
    """
    fn: Callable[[str, TagInfo], str]
    name: str = ""

    def __call__(self, content: str, tag: TagInfo) -> str:
        return self.fn(content, tag)

    def advised(self, before: str = "", after: str = "") -> "CompileFn":
        """Return a new CompileFn whose output is framed by before/after"""
        inner = self.fn

        def advised_fn(content: str, tag: TagInfo) -> str:
            return f"{before}{inner(content, tag)}{after}"

        return CompileFn(fn=advised_fn, name=self.name)


@dataclass(frozen=True)
class ShellFunction:
    """
    Compile hook implemented as a bash function of the compile-time shell

    The function is called with the block content as $1 and its stdout
    becomes generated code.
    """
    name: str


CompileHook = Union[CompileFn, ShellFunction]
MiscHook = Union[Callable[[str, str], str], ShellFunction]
FileHook = Union[Callable[[], str], ShellFunction]


@dataclass
class Environment:
    """
    Hook bindings consulted while compiling a document

    Attributes:
        templates: language -> Template (run-time wrapper)
        compilers: language -> CompileFn or ShellFunction (compile-time hook)
        after: language -> Template appended after each block of that language
        misc: Fallback hook (language, content) -> bash text
        file_header: Producer of text placed before all generated code
        file_footer: Producer of text placed after all generated code
        functions: name -> bash function source, defined in compile-time shells
        prelude: Bash statements run before every compile-time hook
    """
    templates: Dict[str, Template] = field(default_factory=dict)
    compilers: Dict[str, CompileHook] = field(default_factory=dict)
    after: Dict[str, Template] = field(default_factory=dict)
    misc: Optional[MiscHook] = None
    file_header: Optional[FileHook] = None
    file_footer: Optional[FileHook] = None
    functions: Dict[str, str] = field(default_factory=dict)
    prelude: str = ""

    def copy(self) -> "Environment":
        """
        Create an isolated copy

        The binding tables are new dicts, so mutating the copy never
        affects this Environment.
        """
        return Environment(
            templates=dict(self.templates),
            compilers=dict(self.compilers),
            after=dict(self.after),
            misc=self.misc,
            file_header=self.file_header,
            file_footer=self.file_footer,
            functions=dict(self.functions),
            prelude=self.prelude,
        )

    def advise(self, language: str, before: str = "", after: str = "") -> None:
        """
        Wrap the handler bound for a language with before/after code

        Templates receive the code inside their body; Python compile hooks
        get their output framed by it.

        Raises:
            AdviceTargetMissing: If no Template or CompileFn is bound for
                the language
        """
        if language in self.templates:
            self.templates[language] = self.templates[language].advised(before, after)
            return
        hook = self.compilers.get(language)
        if isinstance(hook, CompileFn):
            self.compilers[language] = hook.advised(before, after)
            return
        from ..lib.errors import AdviceTargetMissing
        raise AdviceTargetMissing(language)


class PolicyKind(Enum):
    """Translation strategies, in resolution precedence order"""
    COMMAND_RUN = "command-run"
    COMMAND_COMPILE = "command-compile"
    TEMPLATE = "template"
    COMPILE_FN = "compile-fn"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Policy:
    """
    Resolved translation strategy for one block

    Attributes:
        kind: Which strategy applies
        code: Directive code for COMMAND_RUN / COMMAND_COMPILE
        template: Bound Template for TEMPLATE
        hook: Bound compile hook for COMPILE_FN
    """
    kind: PolicyKind
    code: str = ""
    template: Optional[Template] = None
    hook: Optional[CompileHook] = None
