"""
Layout-aware patching of PUSH immediates and final code assembly.

Injecting ``n`` prelude bytes in front of the runtime shifts every runtime
code offset by ``n``. The only offsets that need rewriting are the ones the
resolver tied to a PUSH: jump targets, CODECOPY source offsets, and the
runtime length pushed by the init code's copy-and-return epilogue.
"""
import dataclasses
from typing import Iterable, Optional, Tuple

import structlog

from .analysis.resolver import Resolution
from .core.errors import MalformedInputError, UnsupportedProgramError
from .core.instruction import Instruction
from .disassembler import Program

logger = structlog.get_logger()

SUPPORTED_PUSH_WIDTHS = (1, 2)

# PUSH len; DUP1; PUSH offset; PUSH 0; CODECOPY; PUSH 0; RETURN
RUNTIME_SKELETON = ("PUSH", "DUP1", "PUSH", "PUSH", "CODECOPY", "PUSH", "RETURN")


@dataclasses.dataclass(frozen=True)
class InitLayout:
    """Where the runtime payload sits inside the init code."""

    skeleton_index: int
    length_push: Instruction
    code_start: int
    prefix: bytes
    payload: bytes


def patch_push(code: bytes, instr: Instruction, delta: int) -> bytes:
    """Return ``code`` with ``instr``'s immediate increased by ``delta`` at the same width."""
    width = instr.push_width
    if width not in SUPPORTED_PUSH_WIDTHS:
        raise UnsupportedProgramError(
            f"only PUSH1 and PUSH2 offsets can be patched, found {instr.mnemonic}",
            pc=instr.pc,
        )
    start = instr.pc + 1
    current = int.from_bytes(code[start : start + width], "big")
    patched = current + delta
    if patched >= 1 << (8 * width):
        raise UnsupportedProgramError(
            f"patched offset {patched:#x} no longer fits in {instr.mnemonic}", pc=instr.pc
        )
    return code[:start] + patched.to_bytes(width, "big") + code[start + width :]


def group_width(program: Program, origins: Iterable[int], group: str) -> Optional[int]:
    """The single push width shared by ``origins``; mixed widths are rejected."""
    width = None
    for pc in sorted(origins):
        instr = program.pushes[pc]
        if instr.push_width not in SUPPORTED_PUSH_WIDTHS:
            raise UnsupportedProgramError(
                f"only PUSH1 and PUSH2 {group} offsets are supported, found {instr.mnemonic}",
                pc=pc,
            )
        if width is None:
            width = instr.push_width
        elif instr.push_width != width:
            raise UnsupportedProgramError(
                f"inconsistent push width among {group} offsets "
                f"(PUSH{width} and {instr.mnemonic})",
                pc=pc,
            )
    return width


def patch_runtime(code: bytes, program: Program, resolution: Resolution, delta: int) -> bytes:
    """Shift every resolved jump target and CODECOPY offset in ``code`` by ``delta``."""
    jump_origins = resolution.jump_origins
    codecopy_origins = resolution.codecopy_origins
    jump_width = group_width(program, jump_origins, "jump")
    codecopy_width = group_width(program, codecopy_origins, "codecopy")

    # a PUSH feeding several sites still holds one offset
    for pc in sorted(jump_origins | codecopy_origins):
        code = patch_push(code, program.pushes[pc], delta)

    logger.info(
        "Patched runtime offsets",
        jump_pushes=len(jump_origins),
        jump_width=jump_width,
        codecopy_pushes=len(codecopy_origins),
        codecopy_width=codecopy_width,
        delta=delta,
    )
    return code


def find_runtime_skeleton(program: Program) -> int:
    """Index of the first copy-runtime-and-return epilogue in init code."""
    mnemonics = [instr.mnemonic for instr in program.instructions]
    span = len(RUNTIME_SKELETON)
    for start in range(len(mnemonics) - span + 1):
        if all(
            mnemonics[start + i].startswith(expected) if expected == "PUSH"
            else mnemonics[start + i] == expected
            for i, expected in enumerate(RUNTIME_SKELETON)
        ):
            return start
    raise MalformedInputError("No valid runtime keyword found for supplied initialization code")


def split_init_code(init_code: bytes, runtime_code: bytes) -> InitLayout:
    """
    Separate init logic from the runtime payload it returns.

    The payload starts at the offset pushed by the epilogue's CODECOPY and must
    match the independently known runtime code byte for byte.
    """
    program = Program(init_code)
    index = find_runtime_skeleton(program)
    length_push = program[index]
    code_start = program[index + 2].value

    if length_push.pc >= code_start:
        raise MalformedInputError(
            "runtime payload overlaps the init code epilogue", pc=length_push.pc
        )

    payload = init_code[code_start:]
    if payload != runtime_code:
        raise MalformedInputError("runtime does not match expected runtime")

    logger.debug(
        "Located runtime payload",
        skeleton_pc=length_push.pc,
        runtime_length=length_push.value,
        code_start=code_start,
    )
    return InitLayout(index, length_push, code_start, init_code[:code_start], payload)


def patch_init_prefix(layout: InitLayout, delta: int) -> bytes:
    """Grow the epilogue's runtime length push by ``delta``."""
    return patch_push(layout.prefix, layout.length_push, delta)


def assemble(prefix: bytes, prelude: bytes, runtime: bytes) -> Tuple[bytes, bytes]:
    """Return ``(init_code, runtime_code)`` with the prelude in front of the runtime."""
    return prefix + prelude + runtime, prelude + runtime
