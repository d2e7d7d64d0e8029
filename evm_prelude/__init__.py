"""
Static prelude injection for EVM contracts.
"""

from .core.errors import (
    InternalInvariantError,
    InvalidValue,
    MalformedInputError,
    OutOfRange,
    PreludeError,
    ResourceExhaustion,
    StackOverflow,
    StackUnderflow,
    UnsupportedProgramError,
)
from .disassembler import Program, disassemble
from .transform import TransformResult, transform, transform_bytecode

__all__ = [
    "InternalInvariantError",
    "InvalidValue",
    "MalformedInputError",
    "OutOfRange",
    "PreludeError",
    "Program",
    "ResourceExhaustion",
    "StackOverflow",
    "StackUnderflow",
    "TransformResult",
    "UnsupportedProgramError",
    "disassemble",
    "transform",
    "transform_bytecode",
]
