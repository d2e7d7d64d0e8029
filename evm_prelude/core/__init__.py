from .abstract_value import AbstractValue
from .errors import (
    InternalInvariantError,
    InvalidValue,
    MalformedInputError,
    OutOfRange,
    PreludeError,
    ResourceExhaustion,
    StackError,
    StackOverflow,
    StackUnderflow,
    UnsupportedProgramError,
)
from .instruction import Instruction
from .sites import CodeCopySite, JumpOrigin, JumpSite

__all__ = [
    "AbstractValue",
    "CodeCopySite",
    "Instruction",
    "InternalInvariantError",
    "InvalidValue",
    "JumpOrigin",
    "JumpSite",
    "MalformedInputError",
    "OutOfRange",
    "PreludeError",
    "ResourceExhaustion",
    "StackError",
    "StackOverflow",
    "StackUnderflow",
    "UnsupportedProgramError",
]
