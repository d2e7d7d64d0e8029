"""Per-invocation analysis state."""
import dataclasses
from typing import TYPE_CHECKING, Dict, Hashable, Optional, Set

import structlog

from ..core.errors import ResourceExhaustion
from ..core.sites import CodeCopySite, JumpSite
from .abstract_stack import AbstractStack

if TYPE_CHECKING:
    from ..disassembler import Program

logger = structlog.get_logger()

DEFAULT_MAX_FORK_DEPTH = 30
DEFAULT_MAX_STEPS = 10000


@dataclasses.dataclass
class ExecutionState:
    instruction_index: int = 0
    halted: bool = False

    def clone(self) -> "ExecutionState":
        return dataclasses.replace(self)


@dataclasses.dataclass
class Path:
    """One branch of exploration: its own stack, position and fork depth."""

    stack: AbstractStack
    state: ExecutionState
    depth: int = 0


class AnalysisSession:
    """
    Owns everything one analysis run mutates: the jump and code-copy tables,
    the fork memo and the global step counter. Nothing here outlives a single
    transform.
    """

    def __init__(
        self,
        program: "Program",
        max_fork_depth: int = DEFAULT_MAX_FORK_DEPTH,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.program = program
        self.max_fork_depth = max_fork_depth
        self.max_steps = max_steps
        self.steps = 0
        self.forks = 0
        self.skipped_forks = 0
        self.attempted_forks: Set[Hashable] = set()

        self.jump_sites: Dict[int, JumpSite] = {}
        for index, instr in enumerate(program.jumps.values()):
            self.jump_sites[instr.pc] = JumpSite(instr.pc, index, instr.mnemonic)

        self.codecopy_sites: Dict[int, CodeCopySite] = {}
        codecopies = [i for i in program.instructions if i.mnemonic == "CODECOPY"]
        for index, instr in enumerate(codecopies):
            self.codecopy_sites[instr.pc] = CodeCopySite(instr.pc, index)

    def tick(self, pc: Optional[int] = None) -> None:
        """Count one executed instruction against the global budget."""
        if self.steps >= self.max_steps:
            logger.error(
                "Step budget exhausted", max_steps=self.max_steps, forks=self.forks
            )
            raise ResourceExhaustion(
                f"exceeded {self.max_steps} instruction steps", pc=pc
            )
        self.steps += 1

    def start(self) -> Path:
        return Path(AbstractStack(), ExecutionState(halted=not self.program))
