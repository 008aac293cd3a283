# src/edrgen/services/process/manager.py
from __future__ import annotations

import atexit
import logging
import os
import shlex
import subprocess
import time
from typing import Dict, List, Optional

import psutil

from edrgen.config import const
from edrgen.domain import ErrorKind, GenerationError, KillCount, ProcessRecord, ProcessStopError

log = logging.getLogger("edrgen.process")


class ProcessManager:
    """
    Запуск дочерних процессов и их проверяемое завершение:
      - ростер: только процессы, которые после запуска нашлись в таблице процессов
      - stop_all(): kill → пауза (grace window) → повторная проверка;
        каждый процесс попадает ровно в одну корзину killed / premature / failures
      - снимок таблицы процессов принадлежит менеджеру и обновляется только
        при spawn, в начале stop_all и после каждой паузы
    Владелец обязан вызвать close() (или stop_all()); atexit-хук только страховка с логом.
    """

    def __init__(self, *, grace_ms: int = const.DEFAULT_GRACE_MS, register_atexit: bool = True) -> None:
        self._roster: List[ProcessRecord] = []
        self._children: Dict[int, subprocess.Popen] = {}
        self._table: Dict[int, Optional[str]] = {}
        self._grace_s = grace_ms / 1000.0
        self._closed = False
        try:
            self._refresh(reap=False)
        except psutil.Error as e:
            raise GenerationError(ErrorKind.USER_PERMISSIONS, f"Unable to read the process table: {e}") from None
        self._atexit_registered = register_atexit
        if register_atexit:
            atexit.register(self._atexit_cleanup)

    # ---------- API ----------

    @property
    def roster(self) -> tuple[ProcessRecord, ...]:
        return tuple(self._roster)

    def spawn(self, path: str, arguments: Optional[str] = None) -> ProcessRecord:
        if self._closed:
            raise GenerationError(ErrorKind.PROCESS, "Process manager is closed")
        try:
            argv = [path, *shlex.split(arguments)] if arguments else [path]
        except ValueError as e:
            raise GenerationError(ErrorKind.INPUT_FORMAT, f"Unable to split arguments {arguments!r}: {e}") from None

        # уже завершившихся детей собираем до запуска, нового не трогаем
        self._reap()
        try:
            child = subprocess.Popen(argv)
        except OSError as e:
            raise GenerationError.from_os_error(ErrorKind.PROCESS, e, f"Unable to spawn {path}: {e}") from None

        # зомби тоже считаются присутствующими: процесс успел стартовать
        self._refresh(reap=False)
        if child.pid not in self._table:
            child.poll()
            raise GenerationError(ErrorKind.PROCESS, "Process Died Unexpectedly")

        try:
            info = psutil.Process(child.pid)
            name = info.name()
            start_time = int(info.create_time())
        except psutil.NoSuchProcess:
            child.poll()
            raise GenerationError(ErrorKind.PROCESS, "Process Died Unexpectedly") from None
        except psutil.AccessDenied:
            name, start_time = os.path.basename(path), int(time.time())

        record = ProcessRecord(id=child.pid, name=name, cmd=shlex.join(argv), start_time=start_time)
        self._children[child.pid] = child
        self._roster.append(record)
        log.info("process.spawned", extra={"extra": {"pid": record.id, "name": record.name, "cmd": record.cmd}})
        return record

    def stop_all(self) -> KillCount:
        """Проверяемое завершение всех отслеживаемых процессов (best effort).

        ProcessStopError (с заполненным KillCount) только если никого не удалось
        убить и никто не завершился сам, а хотя бы один процесс устоял.
        """
        result = KillCount()
        self._refresh()
        for process in list(self._roster):
            if not self._stop_process(process.id):
                result.premature.append(process.id)
                continue
            time.sleep(self._grace_s)
            self._refresh()
            if self._alive(process.id):
                result.failures.append(process.id)
            else:
                result.killed.append(process.id)

        # в ростере остаются только те, кого не удалось завершить
        failed = set(result.failures)
        self._roster = [p for p in self._roster if p.id in failed]
        for pid in list(self._children):
            if pid not in failed:
                self._children.pop(pid)

        log.info(
            "process.stop_all",
            extra={"extra": {"killed": result.killed, "premature": result.premature, "failures": result.failures}},
        )
        if not result.killed and not result.premature and result.failures:
            raise ProcessStopError("All Child Processes Failed to Terminate", result)
        return result

    def close(self) -> Optional[KillCount]:
        """Явное завершение, идемпотентно. Возвращает итог stop_all или None, если ростер пуст."""
        if self._closed:
            return None
        self._closed = True
        if self._atexit_registered:
            atexit.unregister(self._atexit_cleanup)
            self._atexit_registered = False
        if not self._roster:
            return None
        return self.stop_all()

    def __enter__(self) -> "ProcessManager":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- внутреннее ----------

    def _refresh(self, *, reap: bool = True) -> None:
        if reap:
            self._reap()
        self._table = {p.info["pid"]: p.info["status"] for p in psutil.process_iter(["pid", "status"])}

    def _reap(self) -> None:
        # poll() забирает код возврата, иначе завершившиеся дети висят зомби
        for child in self._children.values():
            child.poll()

    def _alive(self, pid: int) -> bool:
        return pid in self._table and self._table[pid] != psutil.STATUS_ZOMBIE

    def _stop_process(self, pid: int) -> bool:
        """SIGKILL, если процесс есть в текущем снимке; False: процесса уже нет."""
        if not self._alive(pid):
            return False
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            log.warning("process.kill_denied", extra={"extra": {"pid": pid}})
        return True

    def _atexit_cleanup(self) -> None:
        if self._closed or not self._roster:
            return
        log.warning("process.leaked", extra={"extra": {"pids": [p.id for p in self._roster]}})
        try:
            self.stop_all()
        except GenerationError as e:
            log.error("process.atexit_cleanup_failed", extra={"extra": {"error": str(e)}})
