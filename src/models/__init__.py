"""
Models package for mdsh

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, pipeline
from .blocks import Block, FenceKind, TagInfo, DirectiveKind
from .hooks import (
    Environment,
    Template,
    CompileFn,
    ShellFunction,
    Policy,
    PolicyKind,
)

__all__ = [
    "ProgramState",
    "pipeline",
    "Block",
    "FenceKind",
    "TagInfo",
    "DirectiveKind",
    "Environment",
    "Template",
    "CompileFn",
    "ShellFunction",
    "Policy",
    "PolicyKind",
]
