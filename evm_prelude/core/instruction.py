import dataclasses
from typing import Optional


@dataclasses.dataclass(frozen=True)
class Instruction:
    """A single decoded instruction. PUSH immediates live in ``immediate``."""

    pc: int
    mnemonic: str
    opcode: int
    immediate: Optional[bytes] = None

    @property
    def is_push(self) -> bool:
        return self.mnemonic.startswith("PUSH")

    @property
    def push_width(self) -> int:
        """Immediate width implied by the mnemonic (0 for non-PUSH)."""
        if not self.is_push:
            return 0
        return int(self.mnemonic[4:])

    @property
    def size(self) -> int:
        return 1 + (len(self.immediate) if self.immediate is not None else 0)

    @property
    def value(self) -> Optional[int]:
        if self.immediate is None:
            return None
        return int.from_bytes(self.immediate, "big")

    def __str__(self) -> str:
        if self.immediate is not None:
            return f"{self.pc:#06x} {self.mnemonic} 0x{self.immediate.hex()}"
        return f"{self.pc:#06x} {self.mnemonic}"
