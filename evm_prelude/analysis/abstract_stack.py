from typing import List, Tuple

from ..core.abstract_value import AbstractValue
from ..core.errors import InvalidValue, StackOverflow, StackUnderflow
from ..utils.evm_ops import UINT_256_MAX

STACK_LIMIT = 1024


class AbstractStack:
    """
    EVM stack over abstract values.

    Slots hold immutable ``AbstractValue`` objects, so ``clone`` only has to
    copy the slot list for the two copies to evolve independently.
    """

    def __init__(self, values=None):
        self._store: List[AbstractValue] = list(values or [])

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self):
        return iter(self._store)

    def __repr__(self) -> str:
        return f"AbstractStack({self._store!r})"

    def push(self, value: AbstractValue) -> None:
        if len(self._store) >= STACK_LIMIT:
            raise StackOverflow("stack overflow")
        if value.is_constant and (
            value.value is None or not 0 <= value.value <= UINT_256_MAX
        ):
            raise InvalidValue(f"constant {value.value!r} does not fit in 256 bits")
        self._store.append(value)

    def pop(self) -> AbstractValue:
        if not self._store:
            raise StackUnderflow("stack underflow")
        return self._store.pop()

    def pop_n(self, count: int) -> List[AbstractValue]:
        """Pop ``count`` values; the top of the stack comes first."""
        if len(self._store) < count:
            raise StackUnderflow("stack underflow")
        if count == 0:
            return []
        popped = self._store[-count:]
        del self._store[-count:]
        popped.reverse()
        return popped

    def peek(self, position: int = 0) -> AbstractValue:
        """Value ``position`` slots below the top (0 is the top)."""
        if len(self._store) <= position:
            raise StackUnderflow("stack underflow")
        return self._store[-1 - position]

    def replace(self, position: int, value: AbstractValue) -> None:
        if len(self._store) <= position:
            raise StackUnderflow("stack underflow")
        self._store[-1 - position] = value

    def swap(self, position: int) -> None:
        """Exchange the top with the slot ``position`` below it (0-indexed)."""
        if len(self._store) <= position:
            raise StackUnderflow("stack underflow")
        head = len(self._store) - 1
        i = head - position
        self._store[head], self._store[i] = self._store[i], self._store[head]

    def dup(self, position: int) -> None:
        """Copy the slot ``position`` below the top (1-indexed) onto the top.

        Both the source slot and the copy are flagged as duplicated.
        """
        if position < 1 or len(self._store) < position:
            raise StackUnderflow("stack underflow")
        i = len(self._store) - position
        copied = self._store[i].as_duplicated()
        self._store[i] = copied
        self.push(copied)

    def clone(self) -> "AbstractStack":
        return AbstractStack(self._store)

    def shape(self) -> Tuple[Tuple[bool, bool], ...]:
        """Constant/duplicated flags per slot, bottom first, ignoring values."""
        return tuple((v.is_constant, v.duplicated) for v in self._store)
