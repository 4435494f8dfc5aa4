"""
Code emitter

Produces the bash text for one block, given the policy it resolved to:

- COMMAND_RUN / TEMPLATE: a { ... } group that reads the block from a
  quoted heredoc at run time; output is not captured
- COMMAND_COMPILE / COMPILE_FN: a hook run now, its stdout used verbatim
- FALLBACK: the misc hook, or an append of the block to the
  mdsh_raw_<language> array

followed, when one is bound, by the after-<language> template.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from ..config import appsettings
from ..models.blocks import Block, TagInfo
from ..models.hooks import CompileFn, CompileHook, Policy, PolicyKind, ShellFunction
from .errors import DirectiveInvocationError
from .quoting import heredoc_delimiterFind, heredoc_make, language_sanitize, literal_quote
from .sandbox import Sandbox
from .log import LOG


@dataclass
class DataCollection:
    """
    Contents of unhandled-language blocks, per sanitized language name

    Mirrors the mdsh_raw_<language> arrays built by the generated script,
    in document order. Owned by one compilation pass.
    """
    entries: Dict[str, List[str]] = field(default_factory=dict)

    def append(self, language: str, content: str) -> str:
        """Record content under the sanitized language; returns the key"""
        key = language_sanitize(language)
        self.entries.setdefault(key, []).append(content)
        return key

    def get(self, language: str) -> List[str]:
        """Return the contents collected for a language (sanitized lookup)"""
        return list(self.entries.get(language_sanitize(language), []))


class Emitter:
    """
    Translates blocks into bash fragments for one compilation pass

    Attributes:
        sandbox: Compile-time shell (and its Environment) of the pass
        data: Fallback collections built so far
    """

    def __init__(self, sandbox: Sandbox) -> None:
        self.sandbox = sandbox
        self.data = DataCollection()

    def block_emit(self, block: Block, tag: TagInfo, policy: Policy) -> List[str]:
        """
        Emit the fragments for one block

        Args:
            block: Block being translated
            tag: Its parsed tag
            policy: Result of policy_resolve() for the tag

        Returns:
            The block's fragment, followed by its after-<language> fragment
            if a template is bound for it

        Raises:
            DirectiveInvocationError: If a compile-time hook fails
        """
        LOG(f"Line {block.start_line}: '{tag.language}' -> {policy.kind.value}", level=2)

        if policy.kind is PolicyKind.COMMAND_RUN:
            fragment = self.wrapper_emit(policy.code, block.content)
        elif policy.kind is PolicyKind.TEMPLATE:
            fragment = self.wrapper_emit(policy.template.body, block.content)
        elif policy.kind is PolicyKind.COMMAND_COMPILE:
            fragment = self.sandbox.run(
                policy.code,
                [block.content, tag.language],
                label=tag.language,
                line=block.start_line,
            )
        elif policy.kind is PolicyKind.COMPILE_FN:
            fragment = self.hook_invoke(policy.hook, block, tag)
        else:
            fragment = self.fallback_emit(block, tag)

        fragments = [fragment]
        after = self.sandbox.env.after.get(tag.language)
        if after is not None:
            fragments.append(self.text_terminate(after.body))
        return fragments

    def wrapper_emit(self, body: str, content: str) -> str:
        """
        Wrap a body in a { } group reading the content from a heredoc

        Example:
            wrapper_emit("python3", "print(1)\\n") ->
            {
            python3
            } <<'```'
            print(1)
            ```
        """
        delimiter = heredoc_delimiterFind(content, appsettings.heredoc_delimiter)
        group = "{\n" + (self.text_terminate(body) or ":\n") + "}"
        return heredoc_make(group, content, delimiter)

    def hook_invoke(self, hook: CompileHook, block: Block, tag: TagInfo) -> str:
        """Run a compile hook now and return its output"""
        if isinstance(hook, ShellFunction):
            return self.sandbox.function_call(
                hook, [block.content, tag.language], label=tag.language, line=block.start_line
            )
        return self.callable_invoke(hook, block, tag)

    def callable_invoke(self, hook: CompileFn, block: Block, tag: TagInfo) -> str:
        """
        Call a Python compile hook, attributing failures to the block

        Failures inside the sandbox are re-raised with this block's line;
        Python exceptions become DirectiveInvocationError.
        """
        try:
            result = hook(block.content, tag)
        except DirectiveInvocationError as e:
            raise DirectiveInvocationError(tag.language, block.start_line, e.status, e.detail) from e
        except Exception as e:
            raise DirectiveInvocationError(tag.language, block.start_line, detail=repr(e)) from e
        if not isinstance(result, str):
            raise DirectiveInvocationError(
                tag.language,
                block.start_line,
                detail=f"{hook.name or 'hook'} returned {type(result).__name__}, not str",
            )
        return result

    def fallback_emit(self, block: Block, tag: TagInfo) -> str:
        """
        Handle a block of a language with no Template or compile hook

        Calls the misc hook if one is bound, otherwise emits
        `mdsh_raw_<language>+=(<quoted content>)`. Content that can't be
        quoted (a NUL character) fails the block.
        """
        misc = self.sandbox.env.misc
        if isinstance(misc, ShellFunction):
            return self.sandbox.function_call(
                misc, [tag.language, block.content], label=tag.language, line=block.start_line
            )
        if misc is not None:
            try:
                return misc(tag.language, block.content)
            except Exception as e:
                raise DirectiveInvocationError(tag.language, block.start_line, detail=repr(e)) from e

        try:
            quoted = literal_quote(block.content)
        except ValueError as e:
            raise DirectiveInvocationError(tag.language, block.start_line, detail=str(e)) from e
        key = self.data.append(tag.language, block.content)
        return f"{appsettings.data_prefix}{key}+=({quoted})\n"

    @staticmethod
    def text_terminate(text: str) -> str:
        """Ensure non-empty text ends with a newline"""
        if text and not text.endswith('\n'):
            return text + '\n'
        return text
