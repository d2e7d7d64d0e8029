import dataclasses
from typing import Optional, Set


@dataclasses.dataclass(frozen=True)
class JumpOrigin:
    # pc is None when the target was folded from arithmetic rather than pushed.
    pc: Optional[int]
    duplicated: bool = False
    rescued: bool = False


@dataclasses.dataclass
class JumpSite:
    """Origins and destinations recorded for one JUMP or JUMPI."""

    pc: int
    index: int
    mnemonic: str
    origins: Set[JumpOrigin] = dataclasses.field(default_factory=set)
    destinations: Set[int] = dataclasses.field(default_factory=set)

    @property
    def resolved(self) -> bool:
        return bool(self.origins)

    def record(self, origin: JumpOrigin, destination: int) -> bool:
        """Record an origin/destination pair. Returns True if anything was new."""
        before = (len(self.origins), len(self.destinations))
        self.origins.add(origin)
        self.destinations.add(destination)
        return (len(self.origins), len(self.destinations)) != before


@dataclasses.dataclass
class CodeCopySite:
    """Where the source-offset operand of one CODECOPY was pushed."""

    pc: int
    index: int
    origin_pc: Optional[int] = None
    duplicated: bool = False
    # set once a visit sees a folded offset or a second push; never cleared
    problem: bool = False

    @property
    def resolved(self) -> bool:
        return self.origin_pc is not None
