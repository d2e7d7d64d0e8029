"""Exception hierarchy for prelude injection.

Every failure aborts the whole transform. Callers can tell an unsupported or
malformed input apart from a defect in the analyzer itself by catching the
specific subclass.
"""
from typing import Optional


class PreludeError(Exception):
    """Base class for all errors raised while injecting a prelude."""

    def __init__(self, message: str, pc: Optional[int] = None):
        self.pc = pc
        if pc is not None:
            message = f"{message} (pc {pc:#x})"
        super().__init__(message)


class MalformedInputError(PreludeError):
    """The supplied prelude, artifact or init code is not in the expected shape."""


class UnsupportedProgramError(PreludeError):
    """The program is valid but uses a construct the rewriter cannot patch."""


class OutOfRange(UnsupportedProgramError):
    """A constant operand falls outside the range the analysis handles."""


class StackError(PreludeError):
    """The abstract stack contract was violated."""


class StackUnderflow(StackError):
    pass


class StackOverflow(StackError):
    pass


class InvalidValue(StackError):
    pass


class InternalInvariantError(PreludeError):
    """An opcode's realized stack effect disagrees with its declared effect."""


class ResourceExhaustion(PreludeError):
    """The global instruction step budget was used up."""
