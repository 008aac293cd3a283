# src/edrgen/services/commander.py
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterator, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from edrgen.domain import (
    ARITY,
    Action,
    ActionKind,
    ConnectAction,
    ConnectSelfAction,
    ErrorKind,
    Event,
    FileAction,
    GenerationError,
    PauseAction,
    ProcessAction,
    build_action,
)
from edrgen.domain.types import format_error
from edrgen.ports import EventSink, RowSource
from edrgen.services.fs import mutator
from edrgen.services.network import NetworkChannel
from edrgen.services.process import ProcessManager

log = logging.getLogger("edrgen.commander")

_FILE_OPS: Dict[ActionKind, Callable[[str], Event]] = {
    ActionKind.NEW_FILE: mutator.new_file,
    ActionKind.MOD_FILE: mutator.mod_file,
    ActionKind.DELETE_FILE: mutator.delete_file,
}


class TaskCommander:
    """
    Интерпретатор команд: одна строка = одно действие, строго по порядку.
      - read_next(): берёт следующую строку, валидирует и выполняет; False, если ввод закончился
      - ошибки строки не прерывают сессию: печать + лог + аудит + счётчик
      - get_num_errors() закрывает сессию (останавливает все запущенные процессы)
    process_manager=None означает, что запуск процессов недоступен: команды
    process получают user_permissions, остальные работают как обычно.
    """

    def __init__(
        self,
        rows: RowSource,
        sink: EventSink,
        *,
        process_manager: Optional[ProcessManager],
        network: Optional[NetworkChannel] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._rows = rows
        self._row_iter: Iterator[Sequence[str]] = iter(rows)
        self._sink = sink
        self._process_manager = process_manager
        self._network = network or NetworkChannel()
        self._console = console or Console(stderr=True, highlight=False, soft_wrap=True)
        self._errors_encountered = 0
        self._commands_processed = 0
        self._closed = False
        self._actors: Dict[ActionKind, Callable[[Action], Event]] = {
            ActionKind.PROCESS: self._run_process,
            ActionKind.PAUSE: self._pause,
            ActionKind.NEW_FILE: self._file_system,
            ActionKind.MOD_FILE: self._file_system,
            ActionKind.DELETE_FILE: self._file_system,
            ActionKind.CONNECT: self._connect,
            ActionKind.CONNECT_SELF: self._connect_self,
        }

    @property
    def commands_processed(self) -> int:
        return self._commands_processed

    @property
    def process_manager(self) -> Optional[ProcessManager]:
        return self._process_manager

    # ---------- API ----------

    def read_next(self) -> bool:
        if self._closed:
            raise RuntimeError("TaskCommander session is closed")
        try:
            row = next(self._row_iter)
        except StopIteration:
            return False
        except GenerationError as e:
            # строку не удалось даже разобрать
            self._commands_processed += 1
            self._report(e)
            return True
        self._commands_processed += 1
        self._dispatch(row)
        return True

    def get_num_errors(self) -> int:
        self.close()
        return self._errors_encountered

    def close(self) -> None:
        """Явное завершение: останавливает все дочерние процессы, затем закрывает источник строк и sink."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._process_manager is not None:
                try:
                    counts = self._process_manager.close()
                except GenerationError as e:
                    self._report(e)
                else:
                    if counts is not None:
                        log.info(
                            "commander.processes_stopped",
                            extra={"extra": {"killed": counts.killed, "premature": counts.premature, "failures": counts.failures}},
                        )
        finally:
            self._rows.close()
            self._sink.close()

    def abort(self) -> None:
        """Завершение без аудит-лога: ничего не пишется, итоги только в диагностический лог."""
        self._closed = True
        try:
            if self._process_manager is not None:
                try:
                    self._process_manager.close()
                except GenerationError as e:
                    log.error("commander.abort_stop_failed", extra={"extra": {"error": str(e)}})
        finally:
            self._rows.close()
            try:
                self._sink.close()
            except OSError as e:
                log.error("commander.abort_sink_close_failed", extra={"extra": {"error": repr(e)}})

    # ---------- разбор и маршрутизация ----------

    def _dispatch(self, row: Sequence[str]) -> None:
        try:
            kind = ActionKind.from_verb(row[0] if row else "")
        except GenerationError as e:
            self._report(e)
            return

        if kind is ActionKind.PROCESS and self._process_manager is None:
            self._report(GenerationError(ErrorKind.USER_PERMISSIONS, "Child processes are not allowed to be spawned"))
            return

        if len(row) < ARITY[kind]:
            self._report(format_error(row, kind))
            # pause не выходит здесь, а пытается разобрать отсутствующее поле (вторая ошибка)
            if kind is not ActionKind.PAUSE:
                return

        try:
            action = build_action(kind, row)
        except GenerationError as e:
            self._report(e)
            return

        try:
            event = self._actors[kind](action)
        except GenerationError as e:
            self._report(e.with_context(f"Record {list(row)!r} encountered an error {e.message}"))
            return
        self._sink.log_event(event)

    def _report(self, error: GenerationError) -> None:
        self._errors_encountered += 1
        self._console.print(escape(str(error)), style="red")
        log.error(
            "commander.error",
            extra={"extra": {"kind": error.kind.value, "message": error.message, "os_kind": error.os_kind}},
        )
        self._sink.log_error(error)

    # ---------- исполнители ----------

    def _run_process(self, action: ProcessAction) -> Event:
        if self._process_manager is None:
            raise GenerationError(ErrorKind.USER_PERMISSIONS, "Child processes are not allowed to be spawned")
        record = self._process_manager.spawn(action.path, action.arguments)
        return Event.for_process(record)

    def _pause(self, action: PauseAction) -> Event:
        try:
            time.sleep(action.millis / 1000.0)
        except OverflowError:
            raise GenerationError(ErrorKind.INPUT_FORMAT, f"Pause of {action.millis} msec is too long") from None
        return Event.for_pause()

    def _file_system(self, action: FileAction) -> Event:
        return _FILE_OPS[action.op](action.path)

    def _connect(self, action: ConnectAction) -> Event:
        return self._network.connect_and_send(action.host, action.port, action.payload)

    def _connect_self(self, action: ConnectSelfAction) -> Event:
        return self._network.loopback_self_test(action.payload)
