"""
Hook file loader

A hook file is a YAML document that pre-populates the Environment a
document is compiled with:

    templates:            # language -> run-time wrapper body
      python: python3
    after:                # language -> code run after each block
      python: echo "python block done"
    functions:            # bash functions defined in compile-time shells
      toJSON: |
        toJSON() { yq -o=json <<<"$1"; }
    compilers:            # language -> name of a function above
      yaml: toJSON
    misc: myMisc          # fallback function name
    file_header: myHeader
    file_footer: myFooter
    prelude: |            # run before every compile-time hook
      set -o pipefail
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ..models.hooks import Environment, ShellFunction, Template
from .errors import HookFileError, RewriteTargetMissing
from .rewriter import function_name


KNOWN_KEYS = {
    'templates', 'after', 'functions', 'compilers',
    'misc', 'file_header', 'file_footer', 'prelude',
}


def config_load(path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse a hook file's YAML"""
    try:
        with open(path, 'r') as f:
            config: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise HookFileError(f"Failed to parse {path}: {e}")
    except OSError as e:
        raise HookFileError(f"Failed to load {path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise HookFileError(f"{path}: top level must be a mapping")
    return config


def stringMap_get(config: Dict[str, Any], key: str) -> Dict[str, str]:
    """Fetch an optional mapping of strings to strings"""
    value = config.get(key) or {}
    if not isinstance(value, dict):
        raise HookFileError(f"'{key}' must be a mapping")
    for name, item in value.items():
        if not isinstance(item, str):
            raise HookFileError(f"'{key}.{name}' must be a string")
    return {str(name): item for name, item in value.items()}


def hooks_load(path: Union[str, Path]) -> Environment:
    """
    Build an Environment from a hook file

    Args:
        path: YAML hook file

    Returns:
        Environment with the file's bindings

    Raises:
        HookFileError: If the file is unreadable, malformed, or refers to
                       functions it doesn't define
    """
    config = config_load(path)

    unknown = set(config) - KNOWN_KEYS
    if unknown:
        raise HookFileError(f"{path}: unknown keys: {', '.join(sorted(unknown))}")

    functions = stringMap_get(config, 'functions')
    for name, source in functions.items():
        try:
            declared = function_name(source)
        except RewriteTargetMissing as e:
            raise HookFileError(f"functions.{name}: {e}")
        if declared != name:
            raise HookFileError(f"functions.{name} defines '{declared}'")

    def function_ref(key: str, value: Any) -> ShellFunction:
        if not isinstance(value, str) or value not in functions:
            raise HookFileError(f"'{key}' must name a function defined under 'functions'")
        return ShellFunction(value)

    env = Environment(
        templates={
            language: Template(body=body, name=f"{path}:templates.{language}")
            for language, body in stringMap_get(config, 'templates').items()
        },
        after={
            language: Template(body=body, name=f"{path}:after.{language}")
            for language, body in stringMap_get(config, 'after').items()
        },
        compilers={
            language: function_ref(f"compilers.{language}", name)
            for language, name in stringMap_get(config, 'compilers').items()
        },
        functions=functions,
    )

    for key in ('misc', 'file_header', 'file_footer'):
        if config.get(key) is not None:
            setattr(env, key, function_ref(key, config[key]))

    prelude = config.get('prelude') or ""
    if not isinstance(prelude, str):
        raise HookFileError("'prelude' must be a string")
    env.prelude = prelude

    return env
