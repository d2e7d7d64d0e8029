import pytest

from evm_prelude.analysis.abstract_stack import STACK_LIMIT, AbstractStack
from evm_prelude.core.abstract_value import AbstractValue
from evm_prelude.core.errors import InvalidValue, StackOverflow, StackUnderflow


def const(value, origin=None):
    return AbstractValue.constant(value, origin_pc=origin)


def test_push_and_pop():
    stack = AbstractStack()
    stack.push(const(1))
    stack.push(const(2))
    assert len(stack) == 2
    assert stack.pop().value == 2
    assert stack.pop().value == 1
    assert len(stack) == 0


def test_pop_empty_stack_underflows():
    with pytest.raises(StackUnderflow):
        AbstractStack().pop()


def test_pop_n_returns_top_first():
    stack = AbstractStack([const(1), const(2), const(3)])
    assert [v.value for v in stack.pop_n(2)] == [3, 2]
    assert [v.value for v in stack] == [1]
    assert stack.pop_n(0) == []


def test_pop_n_underflow_leaves_stack_untouched():
    stack = AbstractStack([const(1)])
    with pytest.raises(StackUnderflow):
        stack.pop_n(2)
    assert len(stack) == 1


def test_overflow_at_limit():
    stack = AbstractStack([AbstractValue.unknown()] * STACK_LIMIT)
    with pytest.raises(StackOverflow):
        stack.push(const(0))


def test_constant_must_fit_in_256_bits():
    stack = AbstractStack()
    stack.push(const(2**256 - 1))
    with pytest.raises(InvalidValue):
        stack.push(const(2**256))
    with pytest.raises(InvalidValue):
        stack.push(const(-1))


def test_swap_is_zero_indexed_from_top():
    stack = AbstractStack([const(1), const(2), const(3)])
    stack.swap(2)
    assert [v.value for v in stack] == [3, 2, 1]
    with pytest.raises(StackUnderflow):
        stack.swap(3)


def test_dup_marks_source_and_copy():
    stack = AbstractStack([const(7, origin=0), const(9, origin=2)])
    stack.dup(2)
    assert [v.value for v in stack] == [7, 9, 7]
    assert stack.peek(0).duplicated
    assert stack.peek(2).duplicated
    assert not stack.peek(1).duplicated
    assert stack.peek(0).origin_pc == 0


def test_dup_out_of_range():
    stack = AbstractStack([const(1)])
    with pytest.raises(StackUnderflow):
        stack.dup(2)


def test_clone_is_independent():
    original = AbstractStack([const(1, origin=0), const(2, origin=2)])
    clone = original.clone()
    clone.dup(1)
    clone.replace(1, const(5))
    assert len(original) == 2
    assert not any(v.duplicated for v in original)
    assert [v.value for v in original] == [1, 2]


def test_shape_ignores_values():
    a = AbstractStack([const(1), AbstractValue.unknown()])
    b = AbstractStack([const(99), AbstractValue.unknown()])
    assert a.shape() == b.shape() == ((True, False), (False, False))
