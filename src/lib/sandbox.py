"""
Compile-time shell sandbox

Documents can run bash while they are being compiled: `mdsh` blocks,
`lang !code` directives and hook functions defined by earlier `mdsh`
blocks all execute here. Each invocation is a fresh bash process that:

1. restores the shell options left by earlier invocations, the caller's
   functions and prelude, then the variables and functions left by
   earlier invocations in this pass,
2. runs the requested code with the given positional arguments,
3. when the code finishes or exits, dumps the shell options, the
   variables that differ from what the shell started with (inherited
   ones included) and every function it knows to the sandbox directory.

The dumped state carries the shell from one block to the next as if it
were one long-lived process. Hook functions found in it (mdsh-lang-X,
mdsh-compile-X, mdsh-after-X, mdsh-misc, mdsh:file-header,
mdsh:file-footer) are turned into bindings of the sandbox's own
Environment. The sandbox is discarded with its directory when the pass
ends, so none of this reaches the caller's Environment or the generated
script.
"""

import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import appsettings
from ..models.hooks import CompileHook, Environment, ShellFunction, Template
from .errors import DirectiveInvocationError, RewriteTargetMissing
from .quoting import literal_quote, words_quote
from .rewriter import function_body, function_name
from .log import LOG


_HELPERS = (__package__ or "mdsh.lib").rsplit(".", 1)[0] + ".helpers"

# shopt options bash refuses to set
FIXED_OPTIONS = ("login_shell", "restricted_shell")

STATE_DUMP = r'''
__mdsh_dump() {
    [[ -n ${__mdsh_dumped-} ]] && return
    __mdsh_dumped=1
    {
        shopt -p
        set +o
    } >"$__mdsh_opts"
    set +o errexit +o nounset
    local __mdsh_n __mdsh_d
    {
        printf 'builtin cd -- %q 2>/dev/null || :\n' "$PWD"
        while IFS= read -r __mdsh_n; do
            case $__mdsh_n in
                __mdsh_*|BASH*|FUNCNAME|_|PWD|OLDPWD|SHLVL|PPID|UID|EUID|GROUPS|SHELLOPTS) continue ;;
                RANDOM|SRANDOM|SECONDS|LINENO|HISTCMD|PIPESTATUS|DIRSTACK|EPOCH*|COMP_*) continue ;;
            esac
            __mdsh_d=$(declare -p "$__mdsh_n" 2>/dev/null) || continue
            [[ $'\n'$__mdsh_base$'\n' == *$'\n'"$__mdsh_d"$'\n'* ]] && continue
            printf '%s\n' "$__mdsh_d"
        done < <(compgen -v)
        while IFS= read -r __mdsh_n; do
            case $__mdsh_n in ''|__mdsh_*|BASH*|FUNCNAME|_|PWD|OLDPWD) continue ;; esac
            declare -p "$__mdsh_n" >/dev/null 2>&1 || printf 'unset -v %s\n' "$__mdsh_n"
        done <<<"$__mdsh_names"
    } >"$__mdsh_vars"
    {
        while IFS= read -r __mdsh_n; do
            case $__mdsh_n in __mdsh_*|mdsh-embed|mdsh-rewrite) continue ;; esac
            declare -f "$__mdsh_n"
            printf '\0'
        done < <(compgen -A function)
    } >"$__mdsh_funcs"
}
trap __mdsh_dump EXIT
'''


class Sandbox:
    """
    Disposable compile-time shell state for one compilation pass

    Attributes:
        env: Environment owned by this pass (a copy of the caller's)
        functions: name -> source of every function known after the last run
        options: Bash text restoring the shell options of the last run
        state: Bash text restoring the variables and functions of the last run
    """

    def __init__(self, env: Environment, search_path: Sequence[str] = ()) -> None:
        """
        Create a sandbox over an isolated copy of an Environment

        Args:
            env: Caller's bindings; copied, never mutated
            search_path: Module search path for the mdsh-embed helper
        """
        self.base = env.copy()
        self.env = env.copy()
        self.search_path = list(search_path)
        self.options = ""
        self.state = ""
        self.functions: Dict[str, str] = {}
        self.workdir: Optional[Path] = None
        self.run_count = 0
        self.harvested: List[Tuple[str, str]] = []

        for name, source in env.functions.items():
            self.functions[name] = source
        self.hooks_harvest()

    def __enter__(self) -> "Sandbox":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def builtins_install(self, hooks: Dict[str, CompileHook]) -> None:
        """Add default compile hooks for languages the caller left unbound"""
        for language, hook in hooks.items():
            self.base.compilers.setdefault(language, hook)
            self.env.compilers.setdefault(language, hook)

    def close(self) -> None:
        """Delete the sandbox directory and forget all shell state"""
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)
            self.workdir = None
        self.options = ""
        self.state = ""

    def state_files(self) -> Tuple[Path, Path, Path]:
        """Paths the shell dumps its options, variables and functions to"""
        assert self.workdir is not None
        return self.workdir / "opts", self.workdir / "vars", self.workdir / "funcs"

    def script_build(self, code_file: Path, args: Sequence[str]) -> str:
        """
        Assemble the bash script for one compile-time invocation

        Shell options are restored before any function is defined, since
        options like extglob change how function bodies parse. The code
        itself is sourced from its own file and the state is dumped right
        after it, so an EXIT trap set by the code doesn't lose the state.

        Raises:
            ValueError: If an argument contains a NUL character
        """
        opts_file, vars_file, funcs_file = self.state_files()
        python = literal_quote(sys.executable)
        module_path = literal_quote(os.pathsep.join(self.search_path))
        helpers = (
            f'mdsh-embed() {{ MDSH_MODULE_PATH={module_path} {python} -m {_HELPERS} embed "$@"; }}\n'
            'mdsh-rewrite() {\n'
            '    local __mdsh_src\n'
            '    __mdsh_src=$(declare -f "$1") || { echo "mdsh-rewrite: $1 is not defined" >&2; return 1; }\n'
            f'    {python} -m {_HELPERS} rewrite "$__mdsh_src" "${{@:2}}"\n'
            '}\n'
        )
        parts = [
            '__mdsh_base=$(declare -p)',
            '__mdsh_names=$(compgen -v)',
            f'__mdsh_opts={literal_quote(str(opts_file))}',
            f'__mdsh_vars={literal_quote(str(vars_file))}',
            f'__mdsh_funcs={literal_quote(str(funcs_file))}',
            self.options,
            *self.env.functions.values(),
            self.env.prelude,
            self.state,
            helpers,
            STATE_DUMP,
            f'set -- {words_quote(args)}' if args else 'set --',
            f'builtin source {literal_quote(str(code_file))}',
            '__mdsh_status=$?',
            '__mdsh_dump',
            'exit "$__mdsh_status"',
        ]
        return '\n'.join(part for part in parts if part) + '\n'

    def run(
        self, code: str, args: Sequence[str] = (), label: str = "mdsh", line: int = 0
    ) -> str:
        """
        Run bash code at compile time and capture its standard output

        Args:
            code: Bash statements to run
            args: Positional parameters ($1, $2, ...) for the code
            label: Language or hook name used in error messages
            line: Document line used in error messages

        Returns:
            Everything the code wrote to stdout

        Raises:
            DirectiveInvocationError: If the shell exits non-zero, can't
                start, or exits without saving its state, or if an
                argument can't be passed to it
        """
        if self.workdir is None:
            self.workdir = Path(tempfile.mkdtemp(prefix="mdsh-"))

        self.run_count += 1
        script = self.workdir / f"run-{self.run_count}.bash"
        code_file = self.workdir / f"code-{self.run_count}.bash"
        state_files = self.state_files()
        for stale in state_files:
            if stale.exists():
                stale.unlink()
        try:
            text = self.script_build(code_file, args)
        except ValueError as e:
            raise DirectiveInvocationError(label, line, detail=str(e)) from e
        code_file.write_bytes(code.encode('utf-8', 'surrogateescape'))
        script.write_bytes(text.encode('utf-8', 'surrogateescape'))

        LOG(f"Compile-time shell #{self.run_count} for '{label}' (line {line})", level=3)
        try:
            completed = subprocess.run(
                [appsettings.shell, str(script)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            raise DirectiveInvocationError(label, line, detail=f"cannot start {appsettings.shell}: {e.strerror}")

        output = completed.stdout.decode('utf-8', 'surrogateescape')
        saved = self.state_load(*state_files)

        if completed.returncode != 0:
            raise DirectiveInvocationError(label, line, status=completed.returncode)
        if not saved:
            raise DirectiveInvocationError(label, line, detail="shell exited without saving its state")

        LOG(f"Compile-time shell #{self.run_count} produced {len(output)} chars", level=3)
        return output

    def function_call(
        self, hook: ShellFunction, args: Sequence[str], label: str, line: int = 0
    ) -> str:
        """Call a sandbox-defined hook function with positional arguments"""
        return self.run(f'{hook.name} "$@"', args, label=label, line=line)

    def state_load(self, opts_file: Path, vars_file: Path, funcs_file: Path) -> bool:
        """
        Read the state dumped by the last run and refresh hook bindings

        Returns:
            False if the run left no complete dump, keeping the old state
        """
        if not all(path.exists() for path in (opts_file, vars_file, funcs_file)):
            return False

        options = [
            option
            for option in opts_file.read_bytes().decode('utf-8', 'surrogateescape').splitlines()
            if option.strip() and option.split()[-1] not in FIXED_OPTIONS
        ]
        variables = vars_file.read_bytes().decode('utf-8', 'surrogateescape')
        functions: Dict[str, str] = {}
        for chunk in funcs_file.read_bytes().decode('utf-8', 'surrogateescape').split('\0'):
            source = chunk.strip()
            if not source:
                continue
            try:
                functions[function_name(source)] = source
            except RewriteTargetMissing:
                LOG(f"Skipping unparseable function dump: {source[:40]!r}", level=3)

        self.functions = functions
        self.options = '\n'.join(options)
        self.state = variables + '\n' + '\n'.join(functions.values())
        self.hooks_harvest()
        return True

    def hooks_harvest(self) -> None:
        """
        Turn hook functions into Environment bindings

        Bindings harvested by a previous call are first reset to the
        caller's originals, so functions that were unset stop applying.
        """
        for table, key in self.harvested:
            self.binding_restore(table, key)
        self.harvested = []

        lang = appsettings.hookName_make("lang") + "-"
        compile_ = appsettings.hookName_make("compile") + "-"
        after = appsettings.hookName_make("after") + "-"
        misc = appsettings.hookName_make("misc")
        header = appsettings.hookName_make("file-header")
        footer = appsettings.hookName_make("file-footer")

        for name, source in self.functions.items():
            if name.startswith(lang) and len(name) > len(lang):
                language = name[len(lang):]
                self.env.templates[language] = Template(body=function_body(source), name=name)
                self.harvested.append(("templates", language))
            elif name.startswith(compile_) and len(name) > len(compile_):
                language = name[len(compile_):]
                self.env.compilers[language] = ShellFunction(name)
                self.harvested.append(("compilers", language))
            elif name.startswith(after) and len(name) > len(after):
                language = name[len(after):]
                self.env.after[language] = Template(body=function_body(source), name=name)
                self.harvested.append(("after", language))
            elif name == misc:
                self.env.misc = ShellFunction(name)
                self.harvested.append(("misc", ""))
            elif name == header:
                self.env.file_header = ShellFunction(name)
                self.harvested.append(("file_header", ""))
            elif name == footer:
                self.env.file_footer = ShellFunction(name)
                self.harvested.append(("file_footer", ""))

    def binding_restore(self, table: str, key: str) -> None:
        """Reset one binding to the value it had in the caller's Environment"""
        if not key:
            setattr(self.env, table, getattr(self.base, table))
            return
        current = getattr(self.env, table)
        original = getattr(self.base, table)
        if key in original:
            current[key] = original[key]
        else:
            current.pop(key, None)
