"""
Inject a prelude in front of a contract's runtime code.

The runtime is disassembled and abstractly interpreted to find every PUSH that
feeds a jump target or a CODECOPY source offset; those immediates and the init
code's runtime length are then shifted by the prelude length.
"""
import binascii
import dataclasses
from typing import Optional, Tuple

import structlog
from eth_utils import decode_hex, encode_hex, is_0x_prefixed

from . import rewriter
from .analysis import interpreter
from .analysis.resolver import Resolution, resolve
from .analysis.session import DEFAULT_MAX_FORK_DEPTH, DEFAULT_MAX_STEPS, AnalysisSession
from .artifacts import ArtifactStore
from .core.errors import MalformedInputError
from .disassembler import Program

logger = structlog.get_logger()

# Trailing compiler metadata (swarm hash) on deployed bytecode, in bytes
DEFAULT_METADATA_LENGTH = 43


@dataclasses.dataclass(frozen=True)
class TransformResult:
    init_code: str
    runtime_code: str
    prelude: str
    prelude_size: int
    resolution: Resolution

    def to_record(self, contract_name: str) -> dict:
        return {
            "contractName": contract_name,
            "prelude": self.prelude,
            "preludeSize": self.prelude_size,
            "bytecode": self.init_code,
            "deployedBytecode": self.runtime_code,
        }


def _decode(value: str, what: str) -> bytes:
    try:
        return decode_hex(value)
    except (binascii.Error, ValueError) as e:
        raise MalformedInputError(f"{what} is not valid hex: {e}")


def parse_prelude(prelude_hex: str) -> bytes:
    """Decode a ``0x``-prefixed prelude. Its contents are never inspected."""
    if not isinstance(prelude_hex, str) or not is_0x_prefixed(prelude_hex):
        raise MalformedInputError(
            "Be sure to format the prelude as a hex string: `0xc0de...`"
        )
    return _decode(prelude_hex, "prelude")


def analyze_runtime(
    runtime_code: bytes,
    metadata_length: int = DEFAULT_METADATA_LENGTH,
    max_fork_depth: int = DEFAULT_MAX_FORK_DEPTH,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Tuple[Program, Resolution]:
    """Disassemble the executable part of ``runtime_code`` and resolve its patch sites."""
    if metadata_length < 0 or len(runtime_code) < metadata_length:
        raise MalformedInputError(
            f"runtime code is shorter than its {metadata_length}-byte metadata suffix"
        )
    executable = runtime_code[: len(runtime_code) - metadata_length]
    program = Program(executable)
    session = AnalysisSession(program, max_fork_depth=max_fork_depth, max_steps=max_steps)
    interpreter.run(session)
    return program, resolve(session)


def transform_bytecode(
    init_hex: str,
    runtime_hex: str,
    prelude_hex: str,
    metadata_length: int = DEFAULT_METADATA_LENGTH,
    max_fork_depth: int = DEFAULT_MAX_FORK_DEPTH,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> TransformResult:
    """
    Rewrite init and runtime code so ``prelude`` runs before the runtime logic.

    Args:
        init_hex: Full init code, ending with the embedded runtime
        runtime_hex: Deployed runtime code including its metadata suffix
        prelude_hex: ``0x``-prefixed prelude bytes
        metadata_length: Bytes of trailing metadata excluded from analysis

    Returns:
        TransformResult with the new init and runtime code as hex strings

    Raises:
        MalformedInputError: Bad prelude, missing epilogue or runtime mismatch
        UnsupportedProgramError: A jump or CODECOPY offset cannot be patched
    """
    prelude = parse_prelude(prelude_hex)
    init_code = _decode(init_hex, "init code")
    runtime_code = _decode(runtime_hex, "runtime code")
    logger.info("Injecting prelude", prelude=prelude_hex, prelude_size=len(prelude))

    layout = rewriter.split_init_code(init_code, runtime_code)
    program, resolution = analyze_runtime(
        runtime_code,
        metadata_length=metadata_length,
        max_fork_depth=max_fork_depth,
        max_steps=max_steps,
    )

    patched_runtime = rewriter.patch_runtime(runtime_code, program, resolution, len(prelude))
    patched_prefix = rewriter.patch_init_prefix(layout, len(prelude))
    final_init, final_runtime = rewriter.assemble(patched_prefix, prelude, patched_runtime)

    return TransformResult(
        init_code=encode_hex(final_init),
        runtime_code=encode_hex(final_runtime),
        prelude=prelude_hex,
        prelude_size=len(prelude),
        resolution=resolution,
    )


def transform(
    contract_name: str,
    prelude_hex: str,
    store: Optional[ArtifactStore] = None,
    metadata_length: int = DEFAULT_METADATA_LENGTH,
) -> Tuple[str, str]:
    """Rewrite a stored contract artifact and persist the result.

    Returns:
        ``(init_code_hex, runtime_code_hex)``
    """
    parse_prelude(prelude_hex)
    store = store or ArtifactStore()
    logger.info("Transforming contract artifact", contract=contract_name)

    artifact = store.load(contract_name)
    result = transform_bytecode(
        artifact["bytecode"],
        artifact["deployedBytecode"],
        prelude_hex,
        metadata_length=metadata_length,
    )
    store.save(contract_name, result.to_record(contract_name))
    return result.init_code, result.runtime_code
