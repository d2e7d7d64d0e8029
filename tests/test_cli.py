import json

from conftest import METADATA, asm, build_init
from evm_prelude import cli
from evm_prelude.core.errors import InternalInvariantError
from test_transform import write_artifact


def test_prints_rewritten_code(tmp_path, capsys):
    write_artifact(tmp_path, "Token")
    assert cli.main(["Token", "0xdeadbeef", "--build-dir", str(tmp_path)]) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "INIT CODE: 0x" in out
    assert "RUNTIME CODE: 0xdeadbeef" in out
    assert (tmp_path / "injected" / "Token.json").exists()


def test_json_output(tmp_path, capsys):
    write_artifact(tmp_path, "Token")
    assert cli.main(["Token", "0x", "--build-dir", str(tmp_path), "--json"]) == cli.EXIT_OK

    printed = json.loads(capsys.readouterr().out)
    saved = json.loads((tmp_path / "injected" / "Token.json").read_text())
    assert printed["bytecode"] == saved["bytecode"]
    assert printed["deployedBytecode"] == saved["deployedBytecode"]


def test_build_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("EVM_PRELUDE_BUILD_DIR", str(tmp_path))
    assert cli.parse_args(["Token", "0x"]).build_dir == str(tmp_path)


def test_bad_prelude_is_rejected(tmp_path, capsys):
    write_artifact(tmp_path, "Token")
    assert cli.main(["Token", "deadbeef", "--build-dir", str(tmp_path)]) == cli.EXIT_REJECTED
    assert capsys.readouterr().out == ""
    assert not (tmp_path / "injected").exists()


def test_unsupported_program_is_rejected(tmp_path):
    runtime = asm("CALLVALUE", "JUMP") + METADATA
    write_artifact(tmp_path, "Dynamic", init=build_init(runtime), runtime=runtime)
    assert cli.main(["Dynamic", "0x00", "--build-dir", str(tmp_path)]) == cli.EXIT_REJECTED


def test_internal_errors_are_distinguished(tmp_path, monkeypatch):
    def broken(*args, **kwargs):
        raise InternalInvariantError("stack depth mismatch")

    monkeypatch.setattr(cli, "transform", broken)
    assert cli.main(["Token", "0x00", "--build-dir", str(tmp_path)]) == cli.EXIT_INTERNAL


def test_json_logs_flag_selects_renderer(tmp_path, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    calls = []
    monkeypatch.setattr(cli, "configure_logging", lambda level, json_logs=False: calls.append((level, json_logs)))
    write_artifact(tmp_path, "Token")

    assert cli.main(["Token", "0x", "--build-dir", str(tmp_path), "--json-logs"]) == cli.EXIT_OK
    assert cli.main(["Token", "0x", "--build-dir", str(tmp_path), "--log-level", "DEBUG"]) == cli.EXIT_OK
    assert calls == [("WARNING", True), ("DEBUG", False)]
