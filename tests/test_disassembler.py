import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from evm_prelude.analysis.opcodes import Opcode
from evm_prelude.disassembler import Program, disassemble


@composite
def generate_bytecode_sequence(draw):
    elements = []
    length = draw(st.integers(min_value=0, max_value=100))
    for _ in range(length):
        opcode_val = draw(st.integers(min_value=0x00, max_value=0xff))
        elements.append(opcode_val.to_bytes(1, "big"))
        if Opcode.PUSH1 <= opcode_val <= Opcode.PUSH32:
            push_size = opcode_val - Opcode.PUSH1 + 1
            elements.append(draw(st.binary(min_size=push_size, max_size=push_size)))
    return b"".join(elements)


@settings(max_examples=200, deadline=None)
@given(code=st.binary(min_size=0, max_size=500))
def test_disassembly_covers_every_byte(code):
    """Instructions tile the buffer exactly, even with a truncated trailing PUSH."""
    instructions = disassemble(code)
    pc = 0
    for instr in instructions:
        assert instr.pc == pc
        pc += instr.size
    assert pc == len(code)


@settings(max_examples=200, deadline=None)
@given(code=generate_bytecode_sequence())
def test_push_immediates_have_full_width(code):
    for instr in disassemble(code):
        if instr.is_push:
            assert len(instr.immediate) == instr.push_width
        else:
            assert instr.immediate is None


def test_disassemble_empty_bytecode():
    assert disassemble(b"") == []


def test_simple_sequence():
    # PUSH1 0x80 PUSH1 0x40 MSTORE STOP
    instructions = disassemble(bytes.fromhex("608060405200"))
    assert [(i.pc, i.mnemonic) for i in instructions] == [
        (0, "PUSH1"),
        (2, "PUSH1"),
        (4, "MSTORE"),
        (5, "STOP"),
    ]
    assert instructions[0].value == 0x80
    assert instructions[1].immediate == b"\x40"


def test_push_data_is_not_decoded():
    # PUSH2 0x5b5b hides two JUMPDEST bytes; the real JUMPDEST is at pc 3
    program = Program.from_hex("0x615b5b5b00")
    assert list(program.jumpdests) == [3]
    assert program.at(1) is None
    assert program.at(3).mnemonic == "JUMPDEST"


def test_truncated_push_keeps_remaining_bytes():
    (instr,) = disassemble(bytes.fromhex("6201"))
    assert instr.mnemonic == "PUSH3"
    assert instr.immediate == b"\x01"
    assert instr.size == 2


def test_undefined_byte_decodes_as_invalid():
    (instr,) = disassemble(b"\x0c")
    assert instr.mnemonic == "INVALID"
    assert instr.opcode == 0x0C


def test_program_indices():
    # 0 PUSH1 0x06, 2 JUMPI, 3 PUSH1 0x06, 5 JUMP, 6 JUMPDEST, 7 STOP
    program = Program(bytes.fromhex("600657600656" + "5b00"))
    assert list(program.pushes) == [0, 3]
    assert list(program.jumps) == [2, 5]
    assert [j.mnemonic for j in program.jumps.values()] == ["JUMPI", "JUMP"]
    assert list(program.jumpdests) == [6]
    assert program.index_of == {0: 0, 2: 1, 3: 2, 5: 3, 6: 4, 7: 5}
    assert program.prior(0) is None
    assert program.prior(1).pc == 0
    assert len(program) == 6


@pytest.mark.parametrize(
    "code_hex,expected",
    [
        ("0x60ff", 0xFF),
        ("0x61003a", 0x3A),
        ("0x7f" + "ff" * 32, 2**256 - 1),
    ],
)
def test_push_values(code_hex, expected):
    (instr,) = Program.from_hex(code_hex).instructions
    assert instr.value == expected
