import pytest

from evm_prelude.analysis.opcodes import PUSH_BYTES, Opcode

# solc 0.5 swarm metadata: a1 65 "bzzr0" 58 20 <32-byte hash> 00 29
METADATA = bytes.fromhex("a165627a7a72305820") + bytes(range(32)) + bytes.fromhex("0029")


def asm(*lines: str) -> bytes:
    """Assemble lines like ``"PUSH2 0x003a"`` or ``"JUMPDEST"`` into bytecode."""
    out = bytearray()
    for line in lines:
        parts = line.split()
        opcode = Opcode[parts[0]]
        out.append(opcode)
        width = PUSH_BYTES.get(opcode)
        if width is not None:
            out += int(parts[1], 16).to_bytes(width, "big")
    return bytes(out)


def build_init(runtime: bytes, code_start: int = 0x0E) -> bytes:
    """Init code whose epilogue copies ``runtime`` from ``code_start`` and returns it."""
    prefix = asm(
        f"PUSH2 {len(runtime):#x}",
        "DUP1",
        f"PUSH2 {code_start:#x}",
        "PUSH1 0x00",
        "CODECOPY",
        "PUSH1 0x00",
        "RETURN",
    )
    prefix += b"\xfe" * (code_start - len(prefix))
    return prefix + runtime


@pytest.fixture
def metadata():
    return METADATA
