import dataclasses
from typing import Optional


@dataclasses.dataclass(frozen=True)
class AbstractValue:
    """One abstract stack slot: either a known constant or an unknown value.

    ``origin_pc`` is the pc of the PUSH that produced the constant, when there
    was one. ``duplicated`` is set once the slot has been copied with DUP.
    """

    is_constant: bool
    value: Optional[int] = None
    origin_pc: Optional[int] = None
    duplicated: bool = False

    @classmethod
    def constant(cls, value: int, origin_pc: Optional[int] = None) -> "AbstractValue":
        return cls(is_constant=True, value=value, origin_pc=origin_pc)

    @classmethod
    def unknown(cls) -> "AbstractValue":
        return cls(is_constant=False)

    def as_duplicated(self) -> "AbstractValue":
        return dataclasses.replace(self, duplicated=True)

    def __repr__(self) -> str:
        if not self.is_constant:
            return "AbsVal(?)"
        origin = f", origin={self.origin_pc:#x}" if self.origin_pc is not None else ""
        dup = ", dup" if self.duplicated else ""
        return f"AbsVal({self.value:#x}{origin}{dup})"
