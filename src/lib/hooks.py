"""
Hook resolution and built-in language hooks

policy_resolve() is the dispatch table lookup that decides how a block is
translated. Resolution order, first match wins:

1. `lang |code`  -> COMMAND_RUN(code)      (no hook lookup)
2. `lang !code`  -> COMMAND_COMPILE(code)  (no hook lookup)
3. Template bound for lang   -> TEMPLATE
4. Compile hook bound for lang -> COMPILE_FN
5. otherwise -> FALLBACK

Lookups are exact and case-sensitive.
"""

from typing import Dict

from ..models.blocks import DirectiveKind, TagInfo
from ..models.hooks import CompileFn, CompileHook, Environment, Policy, PolicyKind
from .sandbox import Sandbox


MAIN_GUARD = 'if [[ $0 == "${BASH_SOURCE-}" ]]; then\n'

SHELL_LANGUAGES = ('shell', 'sh', 'bash')


def policy_resolve(tag: TagInfo, env: Environment) -> Policy:
    """
    Resolve the translation policy for a block's tag

    Args:
        tag: Parsed tag of the block
        env: Bindings in effect for this block

    Returns:
        Policy describing how to translate the block
    """
    if tag.directive is DirectiveKind.RUN:
        return Policy(kind=PolicyKind.COMMAND_RUN, code=tag.code)
    if tag.directive is DirectiveKind.COMPILE:
        return Policy(kind=PolicyKind.COMMAND_COMPILE, code=tag.code)

    template = env.templates.get(tag.language)
    if template is not None:
        return Policy(kind=PolicyKind.TEMPLATE, template=template)

    hook = env.compilers.get(tag.language)
    if hook is not None:
        return Policy(kind=PolicyKind.COMPILE_FN, hook=hook)

    return Policy(kind=PolicyKind.FALLBACK)


def shell_passthrough(content: str, tag: TagInfo) -> str:
    """
    Copy shell code into the script unchanged

    With an @main word on the tag (```shell @main), the code only runs when
    the script is executed directly, not when it is sourced.
    """
    if '@main' in tag.words:
        if content and not content.endswith('\n'):
            content += '\n'
        return f"{MAIN_GUARD}{content}fi\n"
    return content


def hooks_builtin(sandbox: Sandbox) -> Dict[str, CompileHook]:
    """
    Build the compile hooks every document gets

    - shell, sh, bash: code copied verbatim into the script
    - mdsh: code run at compile time in the sandbox; its output becomes
      script text and the functions it defines become hooks for the rest
      of the document

    Args:
        sandbox: Compile-time shell of the current pass

    Returns:
        language -> compile hook
    """
    hooks: Dict[str, CompileHook] = {
        language: CompileFn(fn=shell_passthrough, name=f"builtin-{language}")
        for language in SHELL_LANGUAGES
    }

    def mdsh_block(content: str, tag: TagInfo) -> str:
        return sandbox.run(content, label=tag.language)

    hooks['mdsh'] = CompileFn(fn=mdsh_block, name="builtin-mdsh")
    return hooks
