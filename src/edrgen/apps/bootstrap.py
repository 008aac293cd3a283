# src/edrgen/apps/bootstrap.py
from __future__ import annotations
import logging
from pathlib import Path

from edrgen.adapters.rows import CsvRowSource
from edrgen.adapters.sink import CsvEventSink
from edrgen.domain import GenerationError
from edrgen.services.commander import TaskCommander
from edrgen.services.network import NetworkChannel
from edrgen.services.process import ProcessManager
from edrgen.services.settings import Settings

log = logging.getLogger("edrgen.bootstrap")


def build_commander(input_path: str | Path, settings: Settings) -> TaskCommander:
    """
    Собирает сессию: источник строк, аудит-лог, менеджер процессов, сеть.
    Ошибка открытия входного файла или аудит-лога фатальна (GenerationError наружу).
    Недоступный менеджер процессов не фатален, деградирует только команда process.
    """
    rows = CsvRowSource(input_path, settings.delimiter)
    try:
        sink = CsvEventSink(settings.outfile)
    except GenerationError:
        rows.close()
        raise

    manager = None
    if settings.allow_processes:
        try:
            manager = ProcessManager(grace_ms=settings.grace_ms)
        except GenerationError as e:
            log.warning("bootstrap.process_manager_unavailable", extra={"extra": {"error": str(e)}})
    else:
        log.info("bootstrap.processes_disabled")

    network = NetworkChannel(connect_timeout=settings.connect_timeout_s, accept_timeout=settings.accept_timeout_s)
    return TaskCommander(rows, sink, process_manager=manager, network=network)
