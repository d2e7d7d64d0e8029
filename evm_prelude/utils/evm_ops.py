"""Constant folding for EVM operations.

Operands and results are Python ints in ``[0, 2**256)``. Each operation is
expressed as a z3 bit-vector term over numerals and simplified back to a
numeral, so wrapping and two's-complement behaviour come from the bit-vector
theory rather than hand-written masking.
"""
import z3

from ..core.errors import OutOfRange

WORD_BITS = 256
UINT_256_MAX = 2**WORD_BITS - 1
UINT_255_MAX = 2**(WORD_BITS - 1) - 1

_ZERO = z3.BitVecVal(0, WORD_BITS)
_ONE = z3.BitVecVal(1, WORD_BITS)


def _bv(value: int) -> z3.BitVecRef:
    return z3.BitVecVal(value, WORD_BITS)


def _fold(expr: z3.BitVecRef) -> int:
    return z3.simplify(expr).as_long()


def _flag(cond: z3.BoolRef) -> int:
    return _fold(z3.If(cond, _ONE, _ZERO))


def to_signed(value: int) -> int:
    """Two's-complement interpretation of a 256-bit word."""
    return value - 2**WORD_BITS if value > UINT_255_MAX else value


def evm_add(a: int, b: int) -> int:
    """Perform EVM addition (wrapping at 2^256)."""
    return _fold(_bv(a) + _bv(b))


def evm_sub(a: int, b: int) -> int:
    """Perform EVM subtraction (wrapping at 2^256)."""
    return _fold(_bv(a) - _bv(b))


def evm_mul(a: int, b: int) -> int:
    """Perform EVM multiplication (wrapping at 2^256)."""
    return _fold(_bv(a) * _bv(b))


def evm_div(a: int, b: int) -> int:
    """Perform EVM division (x / 0 = 0)."""
    return _fold(z3.If(_bv(b) == 0, _ZERO, z3.UDiv(_bv(a), _bv(b))))


def evm_sdiv(a: int, b: int) -> int:
    """Perform EVM signed division, truncating toward zero (x / 0 = 0)."""
    return _fold(z3.If(_bv(b) == 0, _ZERO, _bv(a) / _bv(b)))


def evm_mod(a: int, b: int) -> int:
    """Perform EVM modulo (x % 0 = 0)."""
    return _fold(z3.If(_bv(b) == 0, _ZERO, z3.URem(_bv(a), _bv(b))))


def evm_smod(a: int, b: int) -> int:
    """Perform EVM signed modulo; the result takes the dividend's sign (x % 0 = 0)."""
    return _fold(z3.If(_bv(b) == 0, _ZERO, z3.SRem(_bv(a), _bv(b))))


def _widened_mod(expr_width: int, a: int, b: int, c: int, op) -> int:
    extra = expr_width - WORD_BITS
    wide_a = z3.ZeroExt(extra, _bv(a))
    wide_b = z3.ZeroExt(extra, _bv(b))
    wide_c = z3.ZeroExt(extra, _bv(c))
    return _fold(z3.Extract(WORD_BITS - 1, 0, z3.URem(op(wide_a, wide_b), wide_c)))


def evm_addmod(a: int, b: int, c: int) -> int:
    """(a + b) % c without truncating the sum (x % 0 = 0)."""
    if c == 0:
        return 0
    return _widened_mod(WORD_BITS + 1, a, b, c, lambda x, y: x + y)


def evm_mulmod(a: int, b: int, c: int) -> int:
    """(a * b) % c without truncating the product (x % 0 = 0)."""
    if c == 0:
        return 0
    return _widened_mod(2 * WORD_BITS, a, b, c, lambda x, y: x * y)


def evm_exp(base: int, exponent: int) -> int:
    """Perform EVM exponentiation base^exponent mod 2^256."""
    if exponent == 0:
        return 1
    byte_length = (exponent.bit_length() + 7) // 8
    if not 1 <= byte_length <= 32:
        raise OutOfRange(f"EXP exponent is {byte_length} bytes wide")
    if base == 0:
        return 0
    # z3 has no bit-vector exponentiation
    return pow(base, exponent, 2**WORD_BITS)


def evm_signextend(k: int, value: int) -> int:
    """Extend the sign bit of byte ``31 - k`` (counted from the top) over the high bytes."""
    if k > 30:
        return value
    bits = 8 * (k + 1)
    return _fold(z3.SignExt(WORD_BITS - bits, z3.Extract(bits - 1, 0, _bv(value))))


def evm_lt(a: int, b: int) -> int:
    """Unsigned less than comparison."""
    return _flag(z3.ULT(_bv(a), _bv(b)))


def evm_gt(a: int, b: int) -> int:
    """Unsigned greater than comparison."""
    return _flag(z3.UGT(_bv(a), _bv(b)))


def evm_slt(a: int, b: int) -> int:
    """Signed less than comparison."""
    return _flag(_bv(a) < _bv(b))


def evm_sgt(a: int, b: int) -> int:
    """Signed greater than comparison."""
    return _flag(_bv(a) > _bv(b))


def evm_eq(a: int, b: int) -> int:
    return _flag(_bv(a) == _bv(b))


def evm_iszero(a: int) -> int:
    return _flag(_bv(a) == 0)


def evm_and(a: int, b: int) -> int:
    return _fold(_bv(a) & _bv(b))


def evm_or(a: int, b: int) -> int:
    return _fold(_bv(a) | _bv(b))


def evm_xor(a: int, b: int) -> int:
    return _fold(_bv(a) ^ _bv(b))


def evm_not(a: int) -> int:
    return _fold(~_bv(a))


def evm_byte(pos: int, word: int) -> int:
    """Byte ``pos`` of ``word``, counted from the most significant end."""
    if pos >= 32:
        return 0
    return _fold(z3.LShR(_bv(word), _bv((31 - pos) * 8)) & _bv(0xFF))


def evm_shl(shift: int, value: int) -> int:
    """Shift left."""
    if shift >= WORD_BITS:
        return 0
    return _fold(_bv(value) << _bv(shift))


def evm_shr(shift: int, value: int) -> int:
    """Logical shift right."""
    if shift >= WORD_BITS:
        return 0
    return _fold(z3.LShR(_bv(value), _bv(shift)))


def evm_sar(shift: int, value: int) -> int:
    """Arithmetic shift right; large shifts saturate to 0 or all ones."""
    if shift >= WORD_BITS:
        return UINT_256_MAX if value > UINT_255_MAX else 0
    return _fold(_bv(value) >> _bv(shift))
