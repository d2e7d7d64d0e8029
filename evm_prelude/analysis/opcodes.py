"""
EVM opcode table: mnemonics, stack effects and immediate widths.
"""

from enum import IntEnum
from typing import Dict, Tuple


class Opcode(IntEnum):
    """EVM Opcodes"""

    # 0x00 arithmetic
    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    SDIV = 0x05
    MOD = 0x06
    SMOD = 0x07
    ADDMOD = 0x08
    MULMOD = 0x09
    EXP = 0x0A
    SIGNEXTEND = 0x0B

    # 0x10 comparison and bitwise logic
    LT = 0x10
    GT = 0x11
    SLT = 0x12
    SGT = 0x13
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19
    BYTE = 0x1A
    SHL = 0x1B
    SHR = 0x1C
    SAR = 0x1D

    SHA3 = 0x20

    # 0x30 environment
    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F

    # 0x40 block
    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    DIFFICULTY = 0x44
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48

    # 0x50 stack, memory, storage and flow
    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B

    PUSH1 = 0x60
    PUSH2 = 0x61
    PUSH3 = 0x62
    PUSH4 = 0x63
    PUSH5 = 0x64
    PUSH6 = 0x65
    PUSH7 = 0x66
    PUSH8 = 0x67
    PUSH9 = 0x68
    PUSH10 = 0x69
    PUSH11 = 0x6A
    PUSH12 = 0x6B
    PUSH13 = 0x6C
    PUSH14 = 0x6D
    PUSH15 = 0x6E
    PUSH16 = 0x6F
    PUSH17 = 0x70
    PUSH18 = 0x71
    PUSH19 = 0x72
    PUSH20 = 0x73
    PUSH21 = 0x74
    PUSH22 = 0x75
    PUSH23 = 0x76
    PUSH24 = 0x77
    PUSH25 = 0x78
    PUSH26 = 0x79
    PUSH27 = 0x7A
    PUSH28 = 0x7B
    PUSH29 = 0x7C
    PUSH30 = 0x7D
    PUSH31 = 0x7E
    PUSH32 = 0x7F

    DUP1 = 0x80
    DUP2 = 0x81
    DUP3 = 0x82
    DUP4 = 0x83
    DUP5 = 0x84
    DUP6 = 0x85
    DUP7 = 0x86
    DUP8 = 0x87
    DUP9 = 0x88
    DUP10 = 0x89
    DUP11 = 0x8A
    DUP12 = 0x8B
    DUP13 = 0x8C
    DUP14 = 0x8D
    DUP15 = 0x8E
    DUP16 = 0x8F

    SWAP1 = 0x90
    SWAP2 = 0x91
    SWAP3 = 0x92
    SWAP4 = 0x93
    SWAP5 = 0x94
    SWAP6 = 0x95
    SWAP7 = 0x96
    SWAP8 = 0x97
    SWAP9 = 0x98
    SWAP10 = 0x99
    SWAP11 = 0x9A
    SWAP12 = 0x9B
    SWAP13 = 0x9C
    SWAP14 = 0x9D
    SWAP15 = 0x9E
    SWAP16 = 0x9F

    LOG0 = 0xA0
    LOG1 = 0xA1
    LOG2 = 0xA2
    LOG3 = 0xA3
    LOG4 = 0xA4

    # 0xf0 system
    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# Undefined bytes decode under this name and halt like INVALID.
UNDEFINED_MNEMONIC = Opcode.INVALID.name

OPCODE_NAMES: Dict[int, str] = {int(code): code.name for code in Opcode}

# Immediate width for each PUSH opcode
PUSH_BYTES: Dict[int, int] = {Opcode.PUSH1 + i: i + 1 for i in range(32)}

HALTING = frozenset(
    {Opcode.STOP, Opcode.RETURN, Opcode.REVERT, Opcode.INVALID, Opcode.SELFDESTRUCT}
)

# (pops, pushes), grouped by shape
_EFFECT_GROUPS = {
    (0, 0): (Opcode.STOP, Opcode.JUMPDEST, Opcode.INVALID),
    (0, 1): (
        Opcode.ADDRESS, Opcode.ORIGIN, Opcode.CALLER, Opcode.CALLVALUE,
        Opcode.CALLDATASIZE, Opcode.CODESIZE, Opcode.GASPRICE,
        Opcode.RETURNDATASIZE, Opcode.COINBASE, Opcode.TIMESTAMP,
        Opcode.NUMBER, Opcode.DIFFICULTY, Opcode.GASLIMIT, Opcode.CHAINID,
        Opcode.SELFBALANCE, Opcode.BASEFEE, Opcode.PC, Opcode.MSIZE, Opcode.GAS,
    ),
    (1, 0): (Opcode.POP, Opcode.JUMP, Opcode.SELFDESTRUCT),
    (1, 1): (
        Opcode.ISZERO, Opcode.NOT, Opcode.BALANCE, Opcode.CALLDATALOAD,
        Opcode.EXTCODESIZE, Opcode.EXTCODEHASH, Opcode.BLOCKHASH,
        Opcode.MLOAD, Opcode.SLOAD,
    ),
    (2, 0): (
        Opcode.MSTORE, Opcode.MSTORE8, Opcode.SSTORE, Opcode.JUMPI,
        Opcode.RETURN, Opcode.REVERT,
    ),
    (2, 1): (
        Opcode.ADD, Opcode.MUL, Opcode.SUB, Opcode.DIV, Opcode.SDIV,
        Opcode.MOD, Opcode.SMOD, Opcode.EXP, Opcode.SIGNEXTEND,
        Opcode.LT, Opcode.GT, Opcode.SLT, Opcode.SGT, Opcode.EQ,
        Opcode.AND, Opcode.OR, Opcode.XOR, Opcode.BYTE,
        Opcode.SHL, Opcode.SHR, Opcode.SAR, Opcode.SHA3,
    ),
    (3, 0): (Opcode.CALLDATACOPY, Opcode.CODECOPY, Opcode.RETURNDATACOPY),
    (3, 1): (Opcode.ADDMOD, Opcode.MULMOD, Opcode.CREATE),
    (4, 0): (Opcode.EXTCODECOPY,),
    (4, 1): (Opcode.CREATE2,),
    (6, 1): (Opcode.DELEGATECALL, Opcode.STATICCALL),
    (7, 1): (Opcode.CALL, Opcode.CALLCODE),
}

STACK_EFFECTS: Dict[Opcode, Tuple[int, int]] = {
    op: effect for effect, ops in _EFFECT_GROUPS.items() for op in ops
}

for i in range(1, 33):
    STACK_EFFECTS[Opcode(Opcode.PUSH1 + i - 1)] = (0, 1)

# DUPn reads n slots and leaves n + 1; SWAPn reads and leaves n + 1
for i in range(1, 17):
    STACK_EFFECTS[Opcode(Opcode.DUP1 + i - 1)] = (i, i + 1)
    STACK_EFFECTS[Opcode(Opcode.SWAP1 + i - 1)] = (i + 1, i + 1)

for i in range(5):
    STACK_EFFECTS[Opcode(Opcode.LOG0 + i)] = (i + 2, 0)

_missing = set(Opcode) - set(STACK_EFFECTS)
if _missing:
    raise RuntimeError(f"opcodes without a stack effect: {sorted(op.name for op in _missing)}")


def opcode_for(mnemonic: str) -> Opcode:
    """Map a decoded mnemonic back to its opcode (undefined bytes are INVALID)."""
    return Opcode[mnemonic]


def stack_delta(opcode: Opcode) -> int:
    """Net change in stack depth when ``opcode`` executes."""
    pops, pushes = STACK_EFFECTS[opcode]
    return pushes - pops


def family_index(opcode: Opcode) -> int:
    """Numeric suffix of a PUSH/DUP/SWAP/LOG opcode (PUSH2 -> 2, LOG0 -> 0)."""
    if Opcode.PUSH1 <= opcode <= Opcode.PUSH32:
        return opcode - Opcode.PUSH1 + 1
    if Opcode.DUP1 <= opcode <= Opcode.DUP16:
        return opcode - Opcode.DUP1 + 1
    if Opcode.SWAP1 <= opcode <= Opcode.SWAP16:
        return opcode - Opcode.SWAP1 + 1
    if Opcode.LOG0 <= opcode <= Opcode.LOG4:
        return opcode - Opcode.LOG0
    raise ValueError(f"{opcode.name} is not a parameterized opcode")
