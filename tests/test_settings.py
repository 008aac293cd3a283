# tests/test_settings.py
from __future__ import annotations

from pathlib import Path

import pytest

from edrgen.config import const
from edrgen.services.settings import Settings


def test_defaults(tmp_path):
    s = Settings.from_sources(env_file=None)
    assert s.delimiter == const.DEFAULT_DELIMITER
    assert s.outfile == Path("log.csv")
    assert s.log_dir == tmp_path / "logs"
    assert s.grace_ms == 100
    assert s.allow_processes is True
    assert s.connect_timeout_s is None


def test_env_and_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("EDRGEN_DELIMITER=;\nEDRGEN_GRACE_MS=250\n# comment\n", encoding="utf-8")
    monkeypatch.setenv("EDRGEN_GRACE_MS", "5")
    monkeypatch.setenv("EDRGEN_ALLOW_PROCESSES", "no")
    s = Settings.from_sources()
    assert s.delimiter == ";"
    assert s.grace_ms == 5  # ENV важнее .env
    assert s.allow_processes is False


def test_with_overrides_ignores_none_and_unknown():
    s = Settings().with_overrides(delimiter="|", outfile="out/x.csv", grace_ms=None, bogus="x")
    assert s.delimiter == "|"
    assert s.outfile == Path("out/x.csv")
    assert s.grace_ms == const.DEFAULT_GRACE_MS
    assert not hasattr(s, "bogus")


def test_invalid_delimiter():
    with pytest.raises(ValueError):
        Settings(delimiter="::")
