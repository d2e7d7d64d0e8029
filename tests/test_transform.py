import json

import pytest
from eth_utils import encode_hex

from conftest import METADATA, asm, build_init
from evm_prelude import transform, transform_bytecode
from evm_prelude.artifacts import ArtifactStore
from evm_prelude.core.errors import MalformedInputError, UnsupportedProgramError
from evm_prelude.transform import analyze_runtime, parse_prelude

# 0 PUSH1 0x05, 2 PUSH2 0x0020, 5 PUSH1 0x00, 7 CODECOPY, 8 PUSH1 0x0c, 10 JUMP,
# 11 INVALID, 12 JUMPDEST, 13 STOP, 14 STOP
EXECUTABLE = asm(
    "PUSH1 0x05", "PUSH2 0x0020", "PUSH1 0x00", "CODECOPY", "PUSH1 0x0c", "JUMP",
    "INVALID", "JUMPDEST", "STOP", "STOP",
)
RUNTIME = EXECUTABLE + METADATA
INIT = build_init(RUNTIME, code_start=0x20)


def write_artifact(build_dir, name, init=INIT, runtime=RUNTIME):
    contracts = build_dir / "contracts"
    contracts.mkdir(parents=True, exist_ok=True)
    artifact = {
        "contractName": name,
        "bytecode": encode_hex(init),
        "deployedBytecode": encode_hex(runtime),
    }
    (contracts / f"{name}.json").write_text(json.dumps(artifact))


def test_fixture_layout():
    assert len(EXECUTABLE) == 15
    assert len(RUNTIME) == 0x3A
    assert INIT[1:3] == bytes.fromhex("003a")


def test_prelude_shifts_every_offset():
    result = transform_bytecode(encode_hex(INIT), encode_hex(RUNTIME), "0xdeadbeef")

    patched_runtime = asm(
        "PUSH1 0x05", "PUSH2 0x0024", "PUSH1 0x00", "CODECOPY", "PUSH1 0x10", "JUMP",
        "INVALID", "JUMPDEST", "STOP", "STOP",
    ) + METADATA
    prelude = bytes.fromhex("deadbeef")
    patched_prefix = INIT[:1] + bytes.fromhex("003e") + INIT[3:0x20]

    assert result.prelude_size == 4
    assert result.runtime_code == encode_hex(prelude + patched_runtime)
    assert result.init_code == encode_hex(patched_prefix + prelude + patched_runtime)
    assert result.resolution.jump_origins == {8}
    assert result.resolution.codecopy_origins == {2}


def test_empty_prelude_leaves_code_unchanged():
    result = transform_bytecode(encode_hex(INIT), encode_hex(RUNTIME), "0x")
    assert result.prelude_size == 0
    assert result.init_code == encode_hex(INIT)
    assert result.runtime_code == encode_hex(RUNTIME)


def test_metadata_is_not_analyzed():
    # a stray JUMP inside the metadata would be unresolvable if analyzed
    runtime = asm("PUSH1 0x03", "JUMP", "JUMPDEST", "STOP") + b"\x56" + METADATA[1:]
    program, resolution = analyze_runtime(runtime)
    assert len(program) == 4
    assert resolution.jump_origins == {0}


def test_runtime_shorter_than_metadata():
    with pytest.raises(MalformedInputError, match="metadata"):
        analyze_runtime(b"\x00" * 10)


@pytest.mark.parametrize("prelude", ["deadbeef", "0xzz", 1234])
def test_malformed_prelude(prelude):
    with pytest.raises(MalformedInputError):
        parse_prelude(prelude)


def test_prelude_is_opaque():
    # the prelude is never disassembled, even when it is not valid code
    assert parse_prelude("0x61") == b"\x61"


def test_unsupported_runtime_is_rejected():
    executable = asm("CALLVALUE", "JUMP")
    runtime = executable + METADATA
    init = build_init(runtime)
    with pytest.raises(UnsupportedProgramError):
        transform_bytecode(encode_hex(init), encode_hex(runtime), "0x00")


def test_transform_persists_record(tmp_path):
    write_artifact(tmp_path, "Token")
    store = ArtifactStore(str(tmp_path))

    init_hex, runtime_hex = transform("Token", "0xdeadbeef", store=store)

    record = json.loads((tmp_path / "injected" / "Token.json").read_text())
    assert record == {
        "contractName": "Token",
        "prelude": "0xdeadbeef",
        "preludeSize": 4,
        "bytecode": init_hex,
        "deployedBytecode": runtime_hex,
    }
    assert runtime_hex.startswith("0xdeadbeef")


def test_transform_checks_prelude_before_loading(tmp_path):
    with pytest.raises(MalformedInputError, match="format the prelude"):
        transform("Missing", "c0de", store=ArtifactStore(str(tmp_path)))


def test_missing_artifact(tmp_path):
    with pytest.raises(MalformedInputError, match="not found"):
        transform("Missing", "0xc0de", store=ArtifactStore(str(tmp_path)))


def test_artifact_without_bytecode(tmp_path):
    contracts = tmp_path / "contracts"
    contracts.mkdir()
    (contracts / "Empty.json").write_text(json.dumps({"contractName": "Empty"}))
    with pytest.raises(MalformedInputError, match="bytecode"):
        ArtifactStore(str(tmp_path)).load("Empty")


def test_artifact_with_bad_json(tmp_path):
    contracts = tmp_path / "contracts"
    contracts.mkdir()
    (contracts / "Broken.json").write_text("{")
    with pytest.raises(MalformedInputError, match="not valid JSON"):
        ArtifactStore(str(tmp_path)).load("Broken")
