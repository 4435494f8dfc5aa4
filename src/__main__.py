#!/usr/bin/env python3
"""
mdsh - Markdown to bash compiler

Turns a markdown document into one bash script. Fenced code blocks are the
program; the prose around them is its documentation, so the same file can
be read, run, or shipped as a standalone script.

The CLI is built on the ChRIS plugin pattern (chris_plugin), used here as a
general purpose app framework: positional inputdir/outputdir plus options.

Block handling:
    ```shell              copied into the script
    ```mdsh               run at compile time; its output goes into the script
    ```python |python3    fed to python3 on stdin when the script runs
    ```yaml !toJSON "$1"  converted at compile time by toJSON
    ```json               appended to the mdsh_raw_json bash array

Examples:
    # Compile doc.md to build/doc.sh
    mdsh . build/ --inputFile doc.md

    # Sourceable library, with hooks from a YAML file
    mdsh . build/ --inputFile lib.md --outputFile lib.bash --eval --hooks hooks.yaml

    # Compile a document piped on standard input
    cat doc.md | mdsh . build/ --inputFile - --outputFile doc.sh

    # Compile and run with arguments
    mdsh . build/ --inputFile doc.md --run --scriptArgs "--name world"
"""

import shlex
import sys
import traceback
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace
from pathlib import Path

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import Compiler, MdshError, __version__, LOG, state_connectToLogger
from .lib.hookfile import hooks_load
from .models import Environment, ProgramState, pipeline


# Exit status for compile errors; I/O and usage problems exit with 1
EXIT_COMPILE_ERROR = 2

# --inputFile value that reads the document from standard input
STDIN_NAME = "-"

DISPLAY_TITLE = r"""
                 _     _
  _ __ ___   __| |___| |__
 | '_ ` _ \ / _` / __| '_ \
 | | | | | | (_| \__ \ | | |
 |_| |_| |_|\__,_|___/_| |_|

  Markdown to bash compiler
"""

parser = ArgumentParser(
    description="mdsh - compile markdown documents into bash scripts",
    formatter_class=ArgumentDefaultsHelpFormatter,
)
parser.add_argument(
    "--inputFile",
    required=True,
    type=str,
    help="Markdown document under inputdir, or - for standard input",
)
parser.add_argument(
    "--outputFile",
    default=None,
    type=str,
    help="Script name under outputdir (default: document name with .sh)",
)
parser.add_argument(
    "--hooks",
    default=None,
    type=str,
    help="YAML hook file under inputdir with templates and compile hooks",
)
parser.add_argument(
    "--modulePath",
    default=None,
    type=str,
    help="Module search path for mdsh-embed (default: MDSH_MODULE_PATH, then PATH)",
)
parser.add_argument(
    "--eval",
    dest="evalMode",
    action="store_true",
    help="Make the script return when sourced and exit when run",
)
parser.add_argument(
    "--run",
    action="store_true",
    help="Run the document instead of writing the script",
)
parser.add_argument(
    "--scriptArgs",
    default="",
    type=str,
    help="Shell-quoted arguments for the script in --run mode",
)
parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="More logging; repeat for compile-time shell traces",
)
parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def compiler_make(state: ProgramState) -> Compiler:
    return Compiler(
        env=state.environment,
        search_path=appsettings.searchPath_resolve(state.modulePath),
    )


def compileError_exit(state: ProgramState, error: MdshError) -> None:
    print(f"Compilation error: {error}", file=sys.stderr)
    if state.verbosity >= 3:
        traceback.print_exc()
    sys.exit(EXIT_COMPILE_ERROR)


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Resolve the document, hook file and script paths.

    Args:
        inputstate: State holding the CLI options

    Returns:
        ProgramState with inputSourceFile, scriptOutputFile, environment
        and envOK set

    Exits:
        1 if the document is missing or the hook file is unusable
    """
    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)
    LOG("Resolving paths...", level=2)

    from_stdin = state.inputFile == STDIN_NAME
    input_file = Path(STDIN_NAME) if from_stdin else state.inputdir / state.inputFile
    if not from_stdin and not input_file.is_file():
        print(f"Error: no such document: {input_file}", file=sys.stderr)
        sys.exit(1)
    state.inputSourceFile = input_file
    LOG(f"Document: {input_file}", level=2)

    if state.hooks:
        hook_file = state.inputdir / state.hooks
        try:
            state.environment = hooks_load(hook_file)
        except MdshError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        LOG(f"Hooks: {hook_file}", level=2)
    else:
        state.environment = Environment()

    output_name = state.outputFile or f"{'stdin' if from_stdin else input_file.stem}.sh"
    state.scriptOutputFile = state.outputdir / output_name
    if not state.run:
        state.scriptOutputFile.parent.mkdir(parents=True, exist_ok=True)
        LOG(f"Script: {state.scriptOutputFile}", level=2)

    state.envOK = True
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read the document as text; undecodable bytes are kept as surrogates.

    Exits:
        1 if the document can't be read
    """
    state = inputstate.copy()
    LOG("Reading document...", level=1)

    try:
        if state.inputSourceFile.name == STDIN_NAME:
            raw = sys.stdin.buffer.read()
        else:
            raw = state.inputSourceFile.read_bytes()
    except OSError as e:
        print(f"Error: cannot read document: {e}", file=sys.stderr)
        sys.exit(1)

    state.documentSource = raw.decode("utf-8", "surrogateescape")
    LOG(f"{len(state.documentSource)} characters read", level=2)
    return state


def script_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile the document in memory.

    Nothing is written here, so a failing compile leaves any previous
    script untouched. Skipped in --run mode, where script_deliver compiles.

    Exits:
        2 on an unterminated fence or a failing compile-time hook
    """
    state = inputstate.copy()
    if state.run:
        return state

    LOG("Compiling document to bash...", level=1)
    compiler = compiler_make(state)
    try:
        state.compiledScript = compiler.compile(state.documentSource, eval_mode=state.evalMode)
    except MdshError as e:
        compileError_exit(state, e)

    state.compileResult = {"block_count": compiler.block_count}
    return state


def script_deliver(inputstate: ProgramState) -> ProgramState:
    """
    Write the script atomically, or run the document with --run.

    Exits:
        With the script's own status in --run mode, 2 on compile errors,
        1 if the script can't be written
    """
    state = inputstate.copy()

    if state.run:
        try:
            status = compiler_make(state).run(
                state.documentSource,
                shlex.split(state.scriptArgs),
                script_name=state.inputSourceFile.name,
            )
        except MdshError as e:
            compileError_exit(state, e)
        sys.exit(status)

    try:
        output_file = Compiler.output_write(state.compiledScript, state.scriptOutputFile)
    except OSError as e:
        print(f"Error: cannot write script: {e}", file=sys.stderr)
        sys.exit(1)

    state.compileResult = {
        "status": True,
        "output_file": str(output_file),
        "block_count": state.compileResult["block_count"],
    }
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """Tell the user where the script went."""
    state: ProgramState = inputstate.copy()
    if not state.compileResult:
        print("Error: no script was produced", file=sys.stderr)
        sys.exit(1)

    LOG(f"\n✓ Wrote {state.compileResult['output_file']}", level=1)
    LOG(f"  {state.compileResult['block_count']} code blocks", level=1)
    LOG(f"  Run it with: bash {state.scriptOutputFile}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="mdsh - Markdown to bash compiler",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Compile (or run) one markdown document.

    Stages: env_check -> source_read -> script_compile -> script_deliver
    -> results_report. chris_plugin parses the command line and calls
    this with the options and the two directories.
    """
    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )
    state_connectToLogger(state)
    pipeline(state, env_check, source_read, script_compile, script_deliver, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # chris_plugin supplies the arguments
