"""Linear disassembly of EVM bytecode plus the lookup indices the analysis needs."""
from typing import Dict, List, Optional, Union

import structlog
from eth_utils import decode_hex

from .analysis.opcodes import OPCODE_NAMES, PUSH_BYTES, UNDEFINED_MNEMONIC
from .core.instruction import Instruction

logger = structlog.get_logger()


def disassemble(code: bytes) -> List[Instruction]:
    """
    Decode ``code`` into instructions, left to right.

    PUSH immediates are captured on the PUSH and never decoded as opcodes. A
    PUSH truncated by the end of the buffer keeps whatever bytes remain.
    """
    instructions = []
    i = 0
    while i < len(code):
        opcode_value = code[i]
        pc = i
        i += 1

        mnemonic = OPCODE_NAMES.get(opcode_value, UNDEFINED_MNEMONIC)
        immediate = None
        width = PUSH_BYTES.get(opcode_value)
        if width is not None:
            immediate = bytes(code[i : i + width])
            i += width

        instructions.append(Instruction(pc, mnemonic, opcode_value, immediate))
    return instructions


class Program:
    """
    A disassembled code buffer with its derived indices.

    Attributes:
        code: The raw bytes that were decoded
        instructions: Instructions in program order
        pushes: PUSH instructions keyed by pc
        jumps: JUMP/JUMPI instructions keyed by pc
        jumpdests: JUMPDEST instructions keyed by pc
        index_of: pc -> position in ``instructions``
    """

    def __init__(self, code: bytes):
        self.code = bytes(code)
        self.instructions = disassemble(self.code)
        self.pushes: Dict[int, Instruction] = {}
        self.jumps: Dict[int, Instruction] = {}
        self.jumpdests: Dict[int, Instruction] = {}
        self.index_of: Dict[int, int] = {}

        for index, instr in enumerate(self.instructions):
            self.index_of[instr.pc] = index
            if instr.is_push:
                self.pushes[instr.pc] = instr
            elif instr.mnemonic in ("JUMP", "JUMPI"):
                self.jumps[instr.pc] = instr
            elif instr.mnemonic == "JUMPDEST":
                self.jumpdests[instr.pc] = instr

        logger.debug(
            "Disassembled program",
            size=len(self.code),
            instructions=len(self.instructions),
            jumps=len(self.jumps),
            jumpdests=len(self.jumpdests),
        )

    @classmethod
    def from_bytes(cls, code: Union[bytes, bytearray]) -> "Program":
        return cls(bytes(code))

    @classmethod
    def from_hex(cls, code: str) -> "Program":
        return cls(decode_hex(code))

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def at(self, pc: int) -> Optional[Instruction]:
        """Instruction starting exactly at ``pc`` (None inside immediates or past the end)."""
        index = self.index_of.get(pc)
        return None if index is None else self.instructions[index]

    def prior(self, index: int) -> Optional[Instruction]:
        return self.instructions[index - 1] if index > 0 else None

    def render(self) -> str:
        return "\n".join(str(instr) for instr in self.instructions)
