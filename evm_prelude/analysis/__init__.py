from .abstract_stack import AbstractStack
from .interpreter import run
from .opcodes import Opcode, stack_delta
from .resolver import Resolution, resolve
from .session import AnalysisSession, ExecutionState, Path

__all__ = [
    "AbstractStack",
    "AnalysisSession",
    "ExecutionState",
    "Opcode",
    "Path",
    "Resolution",
    "resolve",
    "run",
    "stack_delta",
]
