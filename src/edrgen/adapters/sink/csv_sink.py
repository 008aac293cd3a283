# src/edrgen/adapters/sink/csv_sink.py
from __future__ import annotations
import csv
import errno
import logging
import os
from pathlib import Path
from typing import Sequence

import psutil

from edrgen.domain import ErrorEvent, ErrorKind, Event, GenerationError, SinkUnavailableError
from edrgen.domain.errors import os_kind_of

log = logging.getLogger("edrgen.sink")


def _own_identity() -> tuple[str, str, str, str]:
    """username, имя процесса, командная строка и pid самого генератора."""
    pid = os.getpid()
    try:
        me = psutil.Process(pid)
        with me.oneshot():
            return me.username(), me.name(), " ".join(me.cmdline()), str(pid)
    except psutil.Error as e:
        log.warning("sink.identity_unavailable", extra={"extra": {"error": repr(e)}})
        return "", "", "", str(pid)


class CsvEventSink:
    """Надёжный CSV аудит-лог: каждая запись проходит flush и fsync до возврата из вызова.

    События и ошибки пишутся в один файл; строки ошибок короче
    (kind, timestamp, message).
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # пути и команды из входного файла пишутся теми же байтами, что пришли
            self._fh = open(self.path, "w", newline="", encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise SinkUnavailableError(f"Unable to Generate Log at {self.path}: {e}", os_kind=os_kind_of(e)) from None
        self._writer = csv.writer(self._fh)
        self.username, self.proc_name, self.proc_cmd, self.proc_id = _own_identity()
        try:
            self._write(Event.columns())
        except (OSError, ValueError) as e:
            self._fh.close()
            raise SinkUnavailableError(f"Unable to Generate Log at {self.path}: {e}") from None

    def log_event(self, event: Event) -> None:
        event.username = self.username
        # события без своего процесса приписываются генератору
        if not event.proc_name:
            event.proc_name = self.proc_name
        if not event.proc_id:
            event.proc_id = self.proc_id
        if not event.proc_cmd:
            event.proc_cmd = self.proc_cmd
        try:
            self._write(event.as_row())
        except (OSError, ValueError, csv.Error) as e:
            log.error("sink.event_failed", extra={"extra": {"error": repr(e)}})
            self.log_error(GenerationError(ErrorKind.LOGGING, "Unable to Serialize Log Message"))

    def log_error(self, error: GenerationError) -> ErrorEvent:
        record = ErrorEvent.from_error(error)
        try:
            self._write(record.as_row())
        except (OSError, ValueError, csv.Error) as e:
            raise SinkUnavailableError(f"Unable to Generate Log Data: {e}") from e
        return record

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def _write(self, row: Sequence[str]) -> None:
        self._writer.writerow(row)
        self._fh.flush()
        try:
            os.fsync(self._fh.fileno())
        except OSError as e:
            # /dev/null и т.п. не поддерживают fsync
            if e.errno not in (errno.EINVAL, errno.ENOTSUP):
                raise
