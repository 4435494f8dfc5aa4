"""
CLI state carried between pipeline stages

Each stage of the command-line run takes a ProgramState, copies it, fills
in what it produced, and hands the copy on. pipeline() chains the stages.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type, TypeVar

if TYPE_CHECKING:
    from .hooks import Environment


PS = TypeVar("PS", bound="ProgramState")

Stage = Callable[["ProgramState"], "ProgramState"]


@dataclass
class ProgramState:
    """
    Everything one `mdsh` command run knows, stage by stage.

    Filled in by:
        - argparse: inputdir, outputdir, verbosity, inputFile, outputFile,
          hooks, modulePath, evalMode, run, scriptArgs
        - env_check: envOK, inputSourceFile, scriptOutputFile, environment
        - source_read: documentSource
        - script_compile: compiledScript
        - script_deliver: compileResult

    Attributes:
        inputdir: Directory the document (and hook file) are read from
        outputdir: Directory the script is written to
        verbosity: LOG() threshold, 1 by default
        inputFile: Document name under inputdir, or "-" for stdin
        outputFile: Script name under outputdir; None means <stem>.sh
        hooks: Hook file name under inputdir
        modulePath: Search path for mdsh-embed, overriding MDSH_MODULE_PATH
        evalMode: Append the return-or-exit trailer
        run: Execute the document instead of writing the script
        scriptArgs: Shell-quoted arguments for run mode
        envOK: Set once env_check has accepted the paths
        inputSourceFile: Resolved document path
        scriptOutputFile: Resolved script path
        environment: Bindings from the hook file (empty without one)
        documentSource: Decoded document text
        compiledScript: Script text, held until it is written
        compileResult: Summary for results_report
    """

    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    outputFile: Optional[str] = field(default=None)
    hooks: Optional[str] = field(default=None)
    modulePath: Optional[str] = field(default=None)
    evalMode: bool = field(default=False)
    run: bool = field(default=False)
    scriptArgs: str = field(default="")

    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    scriptOutputFile: Path = field(default=Path("/"))
    environment: Optional["Environment"] = field(default=None)
    documentSource: Optional[str] = field(default=None)
    compiledScript: Optional[str] = field(default=None)
    compileResult: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type[PS], options: Namespace, inputdir: Path, outputdir: Path
    ) -> PS:
        """
        Build the initial state from parsed options.

        Options that aren't ProgramState fields (e.g. ones added by
        chris_plugin) are ignored.
        """
        names = {f.name for f in dataclasses.fields(cls)}
        known = {key: value for key, value in vars(options).items() if key in names}
        return cls(**{**known, "inputdir": inputdir, "outputdir": outputdir})

    def copy(self: PS) -> PS:
        """Shallow copy, so a stage never edits its input"""
        return type(self)(**self.__dict__)


def pipeline(initial_state: ProgramState, *stages: Stage) -> ProgramState:
    """
    Feed a state through stages, left to right.

    Example:
        pipeline(state, env_check, source_read, script_compile)
        # same as script_compile(source_read(env_check(state)))
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
