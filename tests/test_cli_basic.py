# tests/test_cli_basic.py
import csv
import socket
import sys

from typer.testing import CliRunner

from edrgen.apps.cli.app import app


def test_cli_help():
    r = CliRunner().invoke(app, ["--help"])
    assert r.exit_code == 0
    assert "Usage" in r.output


def test_verbs_lists_every_command():
    r = CliRunner().invoke(app, ["verbs"])
    assert r.exit_code == 0
    for verb in ("process", "pause", "new_file", "mod_file", "delete_file", "connect", "connect_self"):
        assert verb in r.output


def test_run_writes_audit_log(tmp_path):
    target = tmp_path / "made.txt"
    src = tmp_path / "commands.csv"
    with socket.create_server(("127.0.0.1", 0)) as server:
        port = server.getsockname()[1]
        src.write_text(
            f"new_file,{target}\n"
            f"connect,127.0.0.1,{port},hello\n"
            "connect_self,ping\n"
            f"process,{sys.executable},-c,pass\n"
            "teleport,mars\n",
            encoding="utf-8",
        )
        out = tmp_path / "audit.csv"
        r = CliRunner().invoke(app, ["run", str(src), "-o", str(out)])
    assert r.exit_code == 0, r.output
    assert "Done. 5 Instructions Found. Encountered 1 error(s)." in r.output
    assert target.exists()

    with open(out, newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    kinds = [row[0] for row in rows[1:]]
    assert kinds == ["File", "Network", "Network", "Process", "Error"]
    assert rows[-1][2].startswith("input_format:")


def test_custom_delimiter(tmp_path):
    src = tmp_path / "commands.txt"
    src.write_text(f"new_file;{tmp_path / 'x'}\npause;1\n", encoding="utf-8")
    r = CliRunner().invoke(app, ["run", str(src), "-d", ";", "-o", str(tmp_path / "out.csv")])
    assert r.exit_code == 0, r.output
    assert "Encountered 0 error(s)." in r.output


def test_no_processes_flag(tmp_path):
    src = tmp_path / "commands.csv"
    src.write_text(f"process,{sys.executable},-c,pass\n", encoding="utf-8")
    r = CliRunner().invoke(app, ["run", str(src), "--no-processes", "-o", str(tmp_path / "out.csv")])
    assert r.exit_code == 0, r.output
    assert "user_permissions" in r.output
    assert "Encountered 1 error(s)." in r.output


def test_empty_input(tmp_path):
    src = tmp_path / "empty.csv"
    src.write_text("", encoding="utf-8")
    r = CliRunner().invoke(app, ["run", str(src), "-o", str(tmp_path / "out.csv")])
    assert r.exit_code == 1
    assert "No Commands Processed" in r.output


def test_missing_input_is_fatal(tmp_path):
    out = tmp_path / "out.csv"
    r = CliRunner().invoke(app, ["run", str(tmp_path / "missing.csv"), "-o", str(out)])
    assert r.exit_code == 1
    assert "Encountered an unexpected error when setting up" in r.output
    assert not out.exists()
