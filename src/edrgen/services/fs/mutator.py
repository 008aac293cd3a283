# src/edrgen/services/fs/mutator.py
from __future__ import annotations
import logging
import os
from pathlib import Path

from edrgen.domain import ErrorKind, Event, GenerationError

log = logging.getLogger("edrgen.fs")


def _io_error(action: str, path: str, e: OSError) -> GenerationError:
    return GenerationError.from_os_error(ErrorKind.IO, e, f"Unable to {action} {path}: {e.strerror or e}")


def new_file(path: str) -> Event:
    """Создаёт пустой файл; уже существующий файл: ошибка, содержимое не трогаем."""
    try:
        with open(path, "xb"):
            pass
    except OSError as e:
        raise _io_error("create", path, e) from None
    log.info("fs.created", extra={"extra": {"path": path}})
    return Event.for_file("file_create", str(Path(path).resolve()))


def mod_file(path: str) -> Event:
    """Дописывает один нулевой байт в конец существующего файла."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_APPEND)
    except OSError as e:
        raise _io_error("modify", path, e) from None
    try:
        os.write(fd, b"\0")
    except OSError as e:
        raise _io_error("modify", path, e) from None
    finally:
        os.close(fd)
    log.info("fs.modified", extra={"extra": {"path": path}})
    return Event.for_file("file_modify", str(Path(path).resolve()))


def delete_file(path: str) -> Event:
    full = str(Path(path).resolve())
    try:
        os.remove(path)
    except OSError as e:
        raise _io_error("delete", path, e) from None
    log.info("fs.deleted", extra={"extra": {"path": path}})
    return Event.for_file("file_delete", full)
