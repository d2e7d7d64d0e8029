"""
Abstract interpreter over disassembled EVM code.

Stack slots are either constants (with the pc of the PUSH that produced them)
or unknown. Every JUMPI whose condition is unknown is explored both ways; the
jump and code-copy tables on the session collect which PUSH fed each jump
target and each CODECOPY source offset along the way.
"""
from typing import Callable, Dict, List, Optional

import structlog

from ..core.abstract_value import AbstractValue
from ..core.errors import InternalInvariantError, UnsupportedProgramError
from ..core.instruction import Instruction
from ..core.sites import JumpOrigin
from ..utils import evm_ops
from .abstract_stack import AbstractStack
from .opcodes import HALTING, STACK_EFFECTS, Opcode, family_index, opcode_for, stack_delta
from .session import AnalysisSession, Path

logger = structlog.get_logger()

# A handler returns the next instruction index when it transfers control,
# otherwise None to fall through.
Handler = Callable[[AnalysisSession, Instruction, Opcode, Path], Optional[int]]

_HANDLERS: Dict[Opcode, Handler] = {}


def semantics(*opcodes: Opcode):
    def register(fn: Handler) -> Handler:
        for opcode in opcodes:
            if opcode in _HANDLERS:
                raise RuntimeError(f"duplicate semantics for {opcode.name}")
            _HANDLERS[opcode] = fn
        return fn

    return register


UNKNOWN = AbstractValue.unknown()


def _constant(value: int) -> AbstractValue:
    return AbstractValue.constant(value)


def _all_constant(values: List[AbstractValue]) -> bool:
    return all(v.is_constant for v in values)


# --- Arithmetic, comparison and bitwise folding ---

_BINARY_FOLDS = {
    Opcode.ADD: evm_ops.evm_add,
    Opcode.MUL: evm_ops.evm_mul,
    Opcode.SUB: evm_ops.evm_sub,
    Opcode.EXP: evm_ops.evm_exp,
    Opcode.SIGNEXTEND: evm_ops.evm_signextend,
    Opcode.LT: evm_ops.evm_lt,
    Opcode.GT: evm_ops.evm_gt,
    Opcode.SLT: evm_ops.evm_slt,
    Opcode.SGT: evm_ops.evm_sgt,
    Opcode.EQ: evm_ops.evm_eq,
    Opcode.AND: evm_ops.evm_and,
    Opcode.OR: evm_ops.evm_or,
    Opcode.XOR: evm_ops.evm_xor,
    Opcode.BYTE: evm_ops.evm_byte,
    Opcode.SHL: evm_ops.evm_shl,
    Opcode.SHR: evm_ops.evm_shr,
    Opcode.SAR: evm_ops.evm_sar,
    Opcode.DIV: evm_ops.evm_div,
    Opcode.SDIV: evm_ops.evm_sdiv,
    Opcode.MOD: evm_ops.evm_mod,
    Opcode.SMOD: evm_ops.evm_smod,
}

_UNARY_FOLDS = {
    Opcode.ISZERO: evm_ops.evm_iszero,
    Opcode.NOT: evm_ops.evm_not,
}

_TERNARY_FOLDS = {
    Opcode.ADDMOD: evm_ops.evm_addmod,
    Opcode.MULMOD: evm_ops.evm_mulmod,
}


def _short_circuit(opcode: Opcode, operands: List[AbstractValue]) -> Optional[int]:
    """Results that are known even when some operand is not."""
    first, second = operands[0], operands[1]
    if opcode in (Opcode.DIV, Opcode.SDIV, Opcode.MOD, Opcode.SMOD):
        if second.is_constant and second.value == 0:
            return 0
    elif opcode in (Opcode.ADDMOD, Opcode.MULMOD):
        if operands[2].is_constant and operands[2].value == 0:
            return 0
    elif opcode == Opcode.EXP:
        if second.is_constant and second.value == 0:
            return 1
    elif opcode == Opcode.BYTE:
        if first.is_constant and first.value >= 32:
            return 0
    elif opcode in (Opcode.SHL, Opcode.SHR):
        if first.is_constant and first.value >= evm_ops.WORD_BITS:
            return 0
    return None


@semantics(*_BINARY_FOLDS, *_TERNARY_FOLDS)
def _fold(session, instr, opcode, path):
    pops, _ = STACK_EFFECTS[opcode]
    operands = path.stack.pop_n(pops)
    known = _short_circuit(opcode, operands)
    if known is not None:
        path.stack.push(_constant(known))
    elif _all_constant(operands):
        fold = _BINARY_FOLDS.get(opcode) or _TERNARY_FOLDS[opcode]
        path.stack.push(_constant(fold(*(v.value for v in operands))))
    else:
        path.stack.push(UNKNOWN)
    return None


@semantics(*_UNARY_FOLDS)
def _fold_unary(session, instr, opcode, path):
    operand = path.stack.pop()
    if operand.is_constant:
        path.stack.push(_constant(_UNARY_FOLDS[opcode](operand.value)))
    else:
        path.stack.push(UNKNOWN)
    return None


# --- Stack manipulation ---

@semantics(*(Opcode(Opcode.PUSH1 + i) for i in range(32)))
def _push(session, instr, opcode, path):
    path.stack.push(AbstractValue.constant(instr.value or 0, origin_pc=instr.pc))
    return None


@semantics(*(Opcode(Opcode.DUP1 + i) for i in range(16)))
def _dup(session, instr, opcode, path):
    path.stack.dup(family_index(opcode))
    return None


@semantics(*(Opcode(Opcode.SWAP1 + i) for i in range(16)))
def _swap(session, instr, opcode, path):
    path.stack.swap(family_index(opcode))
    return None


@semantics(Opcode.POP)
def _pop(session, instr, opcode, path):
    path.stack.pop()
    return None


@semantics(Opcode.JUMPDEST)
def _jumpdest(session, instr, opcode, path):
    return None


# --- Control flow ---

def _record_jump(session: AnalysisSession, instr: Instruction, dest: AbstractValue) -> int:
    """Record where a jump target came from and return the target's index."""
    if not dest.is_constant:
        raise UnsupportedProgramError("non-constant jump target", pc=instr.pc)

    site = session.jump_sites[instr.pc]
    if site.record(JumpOrigin(dest.origin_pc, dest.duplicated), dest.value):
        logger.debug(
            "Recorded jump",
            jump_pc=instr.pc,
            origin_pc=dest.origin_pc,
            destination=dest.value,
            duplicated=dest.duplicated,
        )

    target = session.program.at(dest.value)
    if target is None or target.mnemonic != "JUMPDEST":
        raise UnsupportedProgramError("jump does not target a JUMPDEST", pc=instr.pc)
    return session.program.index_of[dest.value]


@semantics(Opcode.JUMP)
def _jump(session, instr, opcode, path):
    dest = path.stack.pop()
    return _record_jump(session, instr, dest)


@semantics(Opcode.JUMPI)
def _jumpi(session, instr, opcode, path):
    dest, cond = path.stack.pop_n(2)
    target_index = _record_jump(session, instr, dest)
    if not cond.is_constant:
        # Forking concretizes every condition before we get here.
        raise InternalInvariantError("JUMPI condition was not concretized", pc=instr.pc)
    return target_index if cond.value != 0 else None


@semantics(*HALTING)
def _halt(session, instr, opcode, path):
    pops, _ = STACK_EFFECTS[opcode]
    path.stack.pop_n(pops)
    path.state.halted = True
    return None


@semantics(Opcode.CODECOPY)
def _codecopy(session, instr, opcode, path):
    _, code_offset, _ = path.stack.pop_n(3)
    if not code_offset.is_constant:
        return None

    site = session.codecopy_sites[instr.pc]
    if code_offset.origin_pc is None or (
        site.resolved and site.origin_pc != code_offset.origin_pc
    ):
        if not site.problem:
            logger.debug(
                "Codecopy offset has no single push",
                codecopy_pc=instr.pc,
                origin_pc=code_offset.origin_pc,
            )
        site.problem = True
        return None
    site.origin_pc = code_offset.origin_pc
    site.duplicated = site.duplicated or code_offset.duplicated
    return None


@semantics(*(Opcode(Opcode.LOG0 + i) for i in range(5)))
def _log(session, instr, opcode, path):
    path.stack.pop_n(family_index(opcode) + 2)
    return None


# Environment, memory, storage, hashing and calls: consume operands and
# produce values the analysis cannot know.
@semantics(
    Opcode.SHA3,
    Opcode.ADDRESS, Opcode.BALANCE, Opcode.ORIGIN, Opcode.CALLER,
    Opcode.CALLVALUE, Opcode.CALLDATALOAD, Opcode.CALLDATASIZE,
    Opcode.CALLDATACOPY, Opcode.CODESIZE, Opcode.GASPRICE,
    Opcode.EXTCODESIZE, Opcode.EXTCODECOPY, Opcode.RETURNDATASIZE,
    Opcode.RETURNDATACOPY, Opcode.EXTCODEHASH,
    Opcode.BLOCKHASH, Opcode.COINBASE, Opcode.TIMESTAMP, Opcode.NUMBER,
    Opcode.DIFFICULTY, Opcode.GASLIMIT, Opcode.CHAINID, Opcode.SELFBALANCE,
    Opcode.BASEFEE,
    Opcode.MLOAD, Opcode.MSTORE, Opcode.MSTORE8, Opcode.SLOAD, Opcode.SSTORE,
    Opcode.PC, Opcode.MSIZE, Opcode.GAS,
    Opcode.CREATE, Opcode.CALL, Opcode.CALLCODE, Opcode.DELEGATECALL,
    Opcode.CREATE2, Opcode.STATICCALL,
)
def _opaque(session, instr, opcode, path):
    pops, pushes = STACK_EFFECTS[opcode]
    path.stack.pop_n(pops)
    for _ in range(pushes):
        path.stack.push(UNKNOWN)
    return None


_missing = set(Opcode) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"opcodes without semantics: {sorted(op.name for op in _missing)}")


# --- Driver ---

def execute(session: AnalysisSession, path: Path) -> None:
    """Execute the instruction at ``path``'s current index and advance it."""
    program = session.program
    instr = program[path.state.instruction_index]
    opcode = opcode_for(instr.mnemonic)
    session.tick(instr.pc)

    depth = len(path.stack)
    next_index = _HANDLERS[opcode](session, instr, opcode, path)
    if len(path.stack) != depth + stack_delta(opcode):
        raise InternalInvariantError(
            f"{opcode.name} changed stack depth from {depth} to {len(path.stack)}",
            pc=instr.pc,
        )

    if next_index is None:
        next_index = path.state.instruction_index + 1
    path.state.instruction_index = next_index
    if next_index >= len(program):
        path.state.halted = True


def _fork(session: AnalysisSession, path: Path, instr: Instruction, pending: List[Path]) -> Path:
    """
    Split ``path`` at a JUMPI with an unknown condition.

    Returns the path to keep executing: the taken branch when a fork is made
    (the fall-through branch is queued behind it), otherwise ``path`` itself
    with its condition forced to false.
    """
    taken = Path(path.stack.clone(), path.state.clone(), path.depth + 1)
    taken.stack.replace(1, _constant(1))
    path.stack.replace(1, _constant(0))

    site = session.jump_sites[instr.pc]
    key = (site.index, taken.stack.shape())
    if path.depth >= session.max_fork_depth:
        session.skipped_forks += 1
        logger.debug("Fork depth limit reached", jump_pc=instr.pc, depth=path.depth)
        return path
    if key in session.attempted_forks:
        session.skipped_forks += 1
        logger.debug("Skipping repeated fork", jump_pc=instr.pc, depth=path.depth)
        return path

    session.attempted_forks.add(key)
    session.forks += 1
    logger.debug("Forking on JUMPI", jump_pc=instr.pc, depth=taken.depth)
    pending.append(path)
    return taken


def run(session: AnalysisSession) -> AnalysisSession:
    """
    Explore every reachable path from the start of the program.

    Paths are kept on an explicit work-list rather than the call stack. At a
    fork the taken branch runs first, so exploration order matches a
    depth-first recursion.
    """
    pending = [session.start()]
    while pending:
        path = pending.pop()
        while not path.state.halted:
            instr = session.program[path.state.instruction_index]
            if (
                instr.mnemonic == "JUMPI"
                and len(path.stack) >= 2
                and not path.stack.peek(1).is_constant
            ):
                path = _fork(session, path, instr, pending)
            execute(session, path)

    logger.info(
        "Abstract interpretation finished",
        steps=session.steps,
        forks=session.forks,
        skipped_forks=session.skipped_forks,
    )
    return session
