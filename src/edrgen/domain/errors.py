"""Типы ошибок, общие для всех исполнителей генератора."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from edrgen.domain.types import KillCount

__all__ = [
    "ErrorKind",
    "GenerationError",
    "ProcessStopError",
    "SinkUnavailableError",
    "os_kind_of",
]


class ErrorKind(str, Enum):
    INPUT_FORMAT = "input_format"
    USER_PERMISSIONS = "user_permissions"
    IO = "io"
    NETWORK = "network"
    PROCESS = "process"
    LOGGING = "logging"


def os_kind_of(exc: OSError) -> str:
    """Короткий OS-подвид ошибки: ``FileExistsError``, ``ECONNREFUSED`` и т.п."""
    name = type(exc).__name__
    if name != "OSError":
        return name
    if exc.errno is not None:
        import errno

        return errno.errorcode.get(exc.errno, str(exc.errno))
    return name


class GenerationError(Exception):
    """Единица отчёта об ошибке: категория, текст для человека и (опционально) OS-подвид."""

    def __init__(self, kind: ErrorKind | str, message: str, *, os_kind: Optional[str] = None) -> None:
        self.kind = ErrorKind(kind)
        self.message = message
        self.os_kind = os_kind
        super().__init__(str(self))

    @classmethod
    def from_os_error(cls, kind: ErrorKind | str, exc: OSError, message: Optional[str] = None) -> "GenerationError":
        return cls(kind, message or str(exc), os_kind=os_kind_of(exc))

    def with_context(self, message: str) -> "GenerationError":
        """Та же категория и sub-kind, новый текст."""
        return type(self)(self.kind, message, os_kind=self.os_kind)

    def __str__(self) -> str:
        return f"GenerationError {{{self.kind.value}: message: {self.message} }}"

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, os_kind={self.os_kind!r})"


class ProcessStopError(GenerationError):
    """stop_all не смог завершить ни один процесс; в counts разбивка по корзинам."""

    def __init__(self, message: str, counts: "KillCount") -> None:
        self.counts = counts
        super().__init__(ErrorKind.PROCESS, message)

    def with_context(self, message: str) -> "ProcessStopError":
        return ProcessStopError(message, self.counts)


class SinkUnavailableError(GenerationError):
    """Запись аудит-лога не удалось сохранить вовсе."""

    def __init__(self, message: str, *, os_kind: Optional[str] = None) -> None:
        super().__init__(ErrorKind.LOGGING, message, os_kind=os_kind)

    def with_context(self, message: str) -> "SinkUnavailableError":
        return SinkUnavailableError(message, os_kind=self.os_kind)
