"""
Compiler for mdsh documents to bash scripts

Drives a full compilation pass: scan the document, resolve and emit each
code block, wrap the result with the file header/footer hooks and, in eval
mode, append the return-or-exit trailer. The whole script is assembled in
memory; nothing is written anywhere unless the pass succeeds.
"""

import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..config import appsettings
from ..models.hooks import Environment, FileHook, ShellFunction
from .emitter import DataCollection, Emitter
from .embed import module_embed
from .errors import DirectiveInvocationError, RewriteTargetMissing
from .hooks import hooks_builtin, policy_resolve
from .rewriter import function_rewrite
from .sandbox import Sandbox
from .scanner import blocks_scan
from .tags import tag_parse
from .log import LOG, verbosity_bind


def document_decode(document: Union[str, bytes]) -> str:
    """Decode document bytes as UTF-8, keeping undecodable bytes intact"""
    if isinstance(document, bytes):
        return document.decode('utf-8', 'surrogateescape')
    return document


class Compiler:
    """
    Compiles markdown documents into bash scripts

    Responsibilities:
    - Scan documents for code blocks
    - Resolve each block's policy against the hook bindings
    - Emit bash fragments in document order
    - Apply file header/footer hooks and the eval trailer
    - Run compiled scripts and write them atomically
    """

    def __init__(
        self,
        env: Optional[Environment] = None,
        search_path: Optional[Sequence[str]] = None,
        verbosity: Optional[int] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            env: Caller's hook bindings (never modified by compilation)
            search_path: Module search path for embedding (defaults to settings)
            verbosity: Logging verbosity; None keeps the current logging context
        """
        self.env = env if env is not None else Environment()
        if search_path is None:
            search_path = appsettings.searchPath_resolve()
        self.search_path: List[str] = list(search_path)
        self.verbosity = verbosity

        self.block_count = 0
        self.data = DataCollection()

    def compile(self, document: Union[str, bytes], eval_mode: bool = False) -> str:
        """
        Compile a document to a bash script

        Args:
            document: Markdown text or bytes
            eval_mode: Append a trailer that returns when sourced and exits
                       when run

        Returns:
            The complete script

        Raises:
            ScanError: If a fence is never closed
            DirectiveInvocationError: If a compile-time hook fails
        """
        with verbosity_bind(self.verbosity):
            LOG("Starting compilation...", level=2)
            text = document_decode(document)

            with Sandbox(self.env, self.search_path) as sandbox:
                sandbox.builtins_install(hooks_builtin(sandbox))
                emitter = Emitter(sandbox)

                fragments: List[str] = []
                block_count = 0
                for block in blocks_scan(text):
                    if not block.emittable:
                        LOG(f"Line {block.start_line}: skipping {block.fence_kind.value} block", level=3)
                        continue
                    tag = tag_parse(block.raw_tag)
                    policy = policy_resolve(tag, sandbox.env)
                    fragments.extend(emitter.block_emit(block, tag, policy))
                    block_count += 1

                header = self.fileHook_invoke(sandbox, sandbox.env.file_header, "file-header")
                footer = self.fileHook_invoke(sandbox, sandbox.env.file_footer, "file-footer")

            parts = [header, *fragments, footer]
            if eval_mode:
                parts.append(appsettings.eval_trailer + '\n')

            self.block_count = block_count
            self.data = emitter.data
            script = ''.join(parts)
            LOG(f"Compiled {block_count} blocks into {len(script)} chars", level=2)
            return script

    def fileHook_invoke(self, sandbox: Sandbox, hook: Optional[FileHook], label: str) -> str:
        """Produce the text of a file header or footer hook (empty if unbound)"""
        if hook is None:
            return ""
        if isinstance(hook, ShellFunction):
            return sandbox.function_call(hook, [], label=label)
        try:
            return hook()
        except Exception as e:
            raise DirectiveInvocationError(label, 0, detail=repr(e)) from e

    def run(
        self,
        document: Union[str, bytes],
        args: Sequence[str] = (),
        script_name: str = "mdsh-script",
    ) -> int:
        """
        Compile a document and run the result with positional arguments

        The script is written to a temporary file and executed by the
        configured shell, inheriting this process's stdin/stdout/stderr.

        Args:
            document: Markdown text or bytes
            args: Arguments passed to the script ($1, $2, ...)
            script_name: File name the script runs as ($0)

        Returns:
            Exit status of the script
        """
        script = self.compile(document)
        with verbosity_bind(self.verbosity):
            with tempfile.TemporaryDirectory(prefix="mdsh-run-") as tmpdir:
                path = Path(tmpdir) / script_name
                path.write_bytes(script.encode('utf-8', 'surrogateescape'))
                LOG(f"Running {path} with {len(args)} args", level=2)
                completed = subprocess.run([appsettings.shell, str(path), *args])
                LOG(f"Script exited with status {completed.returncode}", level=2)
                return completed.returncode

    def module_embed(self, name: str) -> str:
        """
        Build the sourcing statement for a module on this compiler's search path

        Raises:
            EmbedNotFound: If the module can't be found or read
        """
        return module_embed(name, self.search_path)

    def function_rewrite(
        self, name: str, before: Optional[str] = None, after: Optional[str] = None
    ) -> str:
        """
        Rewrite the body delimiters of a function bound in the environment

        Raises:
            RewriteTargetMissing: If the function is unknown or has no body
        """
        source = self.env.functions.get(name)
        if source is None:
            raise RewriteTargetMissing(name)
        return function_rewrite(source, before, after)

    @staticmethod
    def output_write(text: str, destination: Union[str, Path]) -> Path:
        """
        Replace a file's contents atomically

        The text goes to a temporary file in the destination's directory,
        which then replaces the destination. An existing destination keeps
        its permissions; a new one gets 0777 minus the umask.

        Args:
            text: Script text
            destination: File to create or replace

        Returns:
            Path of the written file
        """
        destination = Path(destination)
        directory = destination.parent if str(destination.parent) else Path(".")
        fd, tmpname = tempfile.mkstemp(prefix=f".{destination.name}.", dir=directory)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(text.encode('utf-8', 'surrogateescape'))
            if destination.exists():
                os.chmod(tmpname, destination.stat().st_mode & 0o7777)
            else:
                umask = os.umask(0)
                os.umask(umask)
                os.chmod(tmpname, 0o777 & ~umask)
            os.replace(tmpname, destination)
        except BaseException:
            if os.path.exists(tmpname):
                os.unlink(tmpname)
            raise
        LOG(f"Wrote {destination}", level=2)
        return destination
