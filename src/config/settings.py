"""
mdsh settings

Read by pydantic-settings from MDSH_* environment variables, or from a
.env file in the working directory. Import the `appsettings` singleton.
"""

import os
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Naming, code generation and shell settings.

    Examples:
        MDSH_HOOK_PREFIX=mdsh
        MDSH_DATA_PREFIX=mdsh_raw_
        MDSH_MODULE_PATH=/opt/lib/bash:/usr/local/lib/bash
    """

    model_config = SettingsConfigDict(
        env_prefix="MDSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Hook naming
    hook_prefix: str = Field(
        default="mdsh",
        description="Prefix of hook functions defined by documents (mdsh-lang-X, mdsh-compile-X, ...)",
    )

    data_prefix: str = Field(
        default="mdsh_raw_",
        description="Prefix of the bash arrays that collect blocks of unhandled languages",
    )

    # Code generation
    heredoc_delimiter: str = Field(
        default="```",
        description="Preferred heredoc delimiter for template blocks (suffixed when it occurs in content)",
    )

    eval_trailer: str = Field(
        default="__status=$? eval 'return $__status || exit $__status' 2>/dev/null",
        description="Statement appended in eval mode: returns to a sourcing shell, exits otherwise",
    )

    # Compile-time execution
    shell: str = Field(
        default="bash",
        description="Shell used for compile-time hooks and for running compiled scripts",
    )

    # Module embedding
    module_path: Optional[str] = Field(
        default=None,
        description="os.pathsep-separated search path for embedded modules (defaults to PATH)",
    )

    def hookName_make(self, kind: str, language: str = "") -> str:
        """
        Build the name of a document-level hook function.

        Args:
            kind: Hook kind ("lang", "compile", "after", "misc",
                "file-header", "file-footer")
            language: Language the hook applies to, if any

        Returns:
            Function name (e.g., "mdsh-lang-python")

        Example:
            >>> settings = AppSettings()
            >>> settings.hookName_make("lang", "python")
            'mdsh-lang-python'
            >>> settings.hookName_make("file-header")
            'mdsh:file-header'
            >>> settings.hookName_make("misc")
            'mdsh-misc'
        """
        if kind.startswith("file-"):
            return f"{self.hook_prefix}:{kind}"
        if language:
            return f"{self.hook_prefix}-{kind}-{language}"
        return f"{self.hook_prefix}-{kind}"

    def searchPath_resolve(self, explicit: Optional[str] = None) -> List[str]:
        """
        Resolve the ordered module search path.

        Uses the explicit value if given, then MDSH_MODULE_PATH, then PATH.
        Empty entries (which the shell reads as the current directory) are
        dropped; "." is kept only when listed.

        Args:
            explicit: os.pathsep-separated path overriding the settings

        Returns:
            List of directories to search, in order
        """
        raw = explicit if explicit is not None else self.module_path
        if raw is None:
            raw = os.environ.get("PATH", "")
        return [entry for entry in raw.split(os.pathsep) if entry]


# Shared instance
appsettings = AppSettings()
