import os
import stat
import sys

import pytest

from pgcontainer.errors import DumpToolError
from pgcontainer.services.command_runner import CommandRunner
from pgcontainer.services.dump_tool import DumpToolService
import pgcontainer.services.dump_tool as dump_tool_module


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class RecordingConsole:
    def __init__(self):
        self.printed = []

    def print(self, *args, **_kwargs):
        self.printed.extend(str(arg) for arg in args)


def _script(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n{body}\n", encoding="utf-8")
    path.chmod(0o755)
    return str(path)


def _service(console=None):
    logger = DummyLogger()
    return DumpToolService(
        logger=logger,
        console=console or RecordingConsole(),
        command_runner=CommandRunner(logger=logger),
    )


def test_materialize_writes_executable_once(tmp_path):
    service = _service()

    first = service.materialize(str(tmp_path), b"#!/bin/sh\necho first\n")
    second = service.materialize(str(tmp_path), b"#!/bin/sh\necho second\n")

    assert first == second == (tmp_path / "pg_dump").resolve()
    assert first.read_bytes() == b"#!/bin/sh\necho first\n"
    assert os.stat(first).st_mode & stat.S_IXUSR


def test_materialize_creates_missing_directory(tmp_path):
    target = tmp_path / "cache" / "tools"

    path = _service().materialize(str(target), b"binary")

    assert path.parent == target.resolve()


def test_resolve_prefers_explicit_path(tmp_path):
    tool = _script(tmp_path, "custom_pg_dump", "pass")

    assert _service().resolve(tool, str(tmp_path)) == tool


def test_resolve_rejects_missing_explicit_path(tmp_path):
    with pytest.raises(DumpToolError, match="pg_dump executable not found"):
        _service().resolve(str(tmp_path / "missing"), str(tmp_path))


def test_resolve_materializes_bundled_tool(tmp_path, monkeypatch):
    service = _service()
    monkeypatch.setattr(service, "bundled_payload", lambda: b"bundled")

    resolved = service.resolve(None, str(tmp_path / "scratch"))

    assert resolved == str((tmp_path / "scratch" / "pg_dump").resolve())


def test_resolve_falls_back_to_path_lookup(tmp_path, monkeypatch):
    service = _service()
    monkeypatch.setattr(service, "bundled_payload", lambda: None)
    monkeypatch.setattr(dump_tool_module.shutil, "which", lambda name: f"/usr/bin/{name}")

    assert service.resolve(None, str(tmp_path)) == "/usr/bin/pg_dump"


def test_resolve_fails_when_no_tool_is_available(tmp_path, monkeypatch):
    service = _service()
    monkeypatch.setattr(service, "bundled_payload", lambda: None)
    monkeypatch.setattr(dump_tool_module.shutil, "which", lambda name: None)

    with pytest.raises(DumpToolError, match="Suggested action"):
        service.resolve(None, str(tmp_path))


def test_bundled_payload_is_absent_from_source_tree():
    assert _service().bundled_payload() is None


def test_dump_passes_url_as_only_argument_and_returns_stdout(tmp_path):
    tool = _script(
        tmp_path,
        "pg_dump",
        "import sys\nassert len(sys.argv) == 2\nsys.stdout.write('-- dump for ' + sys.argv[1])",
    )

    payload = _service().dump(tool, "postgres://u:pw@h/db")

    assert payload == b"-- dump for postgres://u:pw@h/db"


def test_dump_echoes_stderr_and_raises_on_failure(tmp_path):
    console = RecordingConsole()
    tool = _script(
        tmp_path,
        "pg_dump",
        "import sys\nsys.stderr.write('connection refused')\nsys.exit(1)",
    )

    with pytest.raises(DumpToolError, match="status 1"):
        _service(console).dump(tool, "postgres://u:pw@h/db")

    assert "connection refused" in console.printed
