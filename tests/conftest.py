# tests/conftest.py
from __future__ import annotations
import os
import sys
import time
from typing import Iterable, Sequence

import psutil
import pytest

from edrgen.domain import ErrorEvent, Event, GenerationError
from edrgen.services.commander import TaskCommander
from edrgen.services.process import ProcessManager

PYTHON = sys.executable
# аргументы для дочернего python: живёт долго / завершается сразу
SLEEPER_ARGS = "-c 'import time; time.sleep(30)'"
QUICK_ARGS = "-c pass"


# ---- аудит-лог в памяти ----
class MemorySink:
    def __init__(self) -> None:
        self.events: list[Event] = []
        self.errors: list[GenerationError] = []
        self.closed = False

    def log_event(self, event: Event) -> None:
        self.events.append(event)

    def log_error(self, error: GenerationError) -> ErrorEvent:
        self.errors.append(error)
        return ErrorEvent.from_error(error)

    def close(self) -> None:
        self.closed = True


# ---- источник строк из списка ----
class ListRows:
    def __init__(self, rows: Iterable[Sequence[str]]) -> None:
        self._it = iter([list(r) for r in rows])
        self.closed = False

    def __iter__(self):
        return self._it

    def close(self) -> None:
        self.closed = True


def _wait_for_exit(pid: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return
        except psutil.NoSuchProcess:
            return
        time.sleep(0.02)
    raise AssertionError(f"process {pid} did not exit within {timeout}s")


# ---------- автофикстура: чистое окружение на каждый тест ----------
@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("EDRGEN_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EDRGEN_LOG_DIR", str(tmp_path / "logs"))
    yield


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def manager():
    m = ProcessManager(grace_ms=50, register_atexit=False)
    try:
        yield m
    finally:
        try:
            m.close()
        except GenerationError:
            pass


@pytest.fixture
def make_commander(sink, manager):
    made: list[TaskCommander] = []

    def _make(rows: Iterable[Sequence[str]], *, processes: bool = True) -> TaskCommander:
        c = TaskCommander(ListRows(rows), sink, process_manager=manager if processes else None)
        made.append(c)
        return c

    yield _make
    for c in made:
        c.close()


@pytest.fixture
def wait_for_exit():
    return _wait_for_exit
