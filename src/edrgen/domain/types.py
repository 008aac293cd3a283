# src/edrgen/domain/types.py
from __future__ import annotations

import shlex
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, Sequence, Union

from edrgen.domain.errors import ErrorKind, GenerationError

_U16_MAX = 0xFFFF
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------- команды ----------


class ActionKind(str, Enum):
    PROCESS = "process"
    PAUSE = "pause"
    NEW_FILE = "new_file"
    MOD_FILE = "mod_file"
    DELETE_FILE = "delete_file"
    CONNECT = "connect"
    CONNECT_SELF = "connect_self"

    @classmethod
    def from_verb(cls, verb: str) -> "ActionKind":
        try:
            return cls(verb)
        except ValueError:
            raise GenerationError(ErrorKind.INPUT_FORMAT, f"{verb} is not a valid instruction") from None


# минимальное число полей в строке, считая сам глагол
ARITY: dict[ActionKind, int] = {
    ActionKind.PROCESS: 2,
    ActionKind.PAUSE: 2,
    ActionKind.NEW_FILE: 2,
    ActionKind.MOD_FILE: 2,
    ActionKind.DELETE_FILE: 2,
    ActionKind.CONNECT: 4,
    ActionKind.CONNECT_SELF: 2,
}

USAGE: dict[ActionKind, str] = {
    ActionKind.PROCESS: "process,<path>,[arguments...]",
    ActionKind.PAUSE: "pause,<msec>",
    ActionKind.NEW_FILE: "new_file,<path>",
    ActionKind.MOD_FILE: "mod_file,<path>",
    ActionKind.DELETE_FILE: "delete_file,<path>",
    ActionKind.CONNECT: "connect,<destination_host>,<destination_port>,<message>",
    ActionKind.CONNECT_SELF: "connect_self,<message>",
}


@dataclass(frozen=True, slots=True)
class ProcessAction:
    path: str
    arguments: Optional[str] = None
    kind: ClassVar[ActionKind] = ActionKind.PROCESS


@dataclass(frozen=True, slots=True)
class PauseAction:
    millis: int
    kind: ClassVar[ActionKind] = ActionKind.PAUSE


@dataclass(frozen=True, slots=True)
class FileAction:
    op: ActionKind
    path: str

    @property
    def kind(self) -> ActionKind:
        return self.op


@dataclass(frozen=True, slots=True)
class ConnectAction:
    host: str
    port: int
    payload: bytes
    kind: ClassVar[ActionKind] = ActionKind.CONNECT


@dataclass(frozen=True, slots=True)
class ConnectSelfAction:
    payload: bytes
    kind: ClassVar[ActionKind] = ActionKind.CONNECT_SELF


Action = Union[ProcessAction, PauseAction, FileAction, ConnectAction, ConnectSelfAction]


def format_error(row: Sequence[str], kind: ActionKind) -> GenerationError:
    return GenerationError(
        ErrorKind.INPUT_FORMAT,
        f"Record {list(row)!r} is not formatted correctly for {kind.value} ({USAGE[kind]})",
    )


def _parse_unsigned(text: Optional[str], upper: int) -> Optional[int]:
    if text is None or not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    return value if value <= upper else None


def build_action(kind: ActionKind, row: Sequence[str]) -> Action:
    """Собирает вариант для ``kind`` из сырой строки и разбирает типизированные поля.

    Число полей проверяет вызывающий по ARITY; отсутствующие поля здесь
    выглядят как неразбираемые значения.
    """
    args = list(row[1:])
    first = args[0] if args else None

    if kind is ActionKind.PROCESS:
        arguments = None
        if len(args) > 1:
            # доп. поля склеиваются через пробел и потом режутся по правилам shell
            arguments = "".join(f"{a} " for a in args[1:])
            try:
                shlex.split(arguments)
            except ValueError as e:
                raise GenerationError(
                    ErrorKind.INPUT_FORMAT, f"Record {list(row)!r} has unparseable process arguments: {e}"
                ) from None
        return ProcessAction(path=first or "", arguments=arguments)

    if kind is ActionKind.PAUSE:
        millis = _parse_unsigned(first, _U64_MAX)
        if millis is None:
            raise format_error(row, kind)
        return PauseAction(millis=millis)

    if kind in (ActionKind.NEW_FILE, ActionKind.MOD_FILE, ActionKind.DELETE_FILE):
        return FileAction(op=kind, path=first or "")

    if kind is ActionKind.CONNECT:
        port = _parse_unsigned(args[1] if len(args) > 1 else None, _U16_MAX)
        if port is None:
            raise format_error(row, kind)
        payload = args[2] if len(args) > 2 else ""
        return ConnectAction(host=first or "", port=port, payload=payload.encode("utf-8", "surrogateescape"))

    if kind is ActionKind.CONNECT_SELF:
        return ConnectSelfAction(payload=(first or "").encode("utf-8", "surrogateescape"))

    raise GenerationError(ErrorKind.INPUT_FORMAT, f"{kind.value} is not a valid instruction")


# ---------- процессы ----------


@dataclass(frozen=True, slots=True)
class ProcessRecord:
    id: int
    name: str
    cmd: str
    start_time: int


@dataclass(slots=True)
class KillCount:
    killed: list[int] = field(default_factory=list)
    premature: list[int] = field(default_factory=list)
    failures: list[int] = field(default_factory=list)

    def total(self) -> int:
        return len(self.killed) + len(self.premature) + len(self.failures)


# ---------- записи аудита ----------


@dataclass(slots=True)
class Event:
    kind: str
    timestamp: str = field(default_factory=now_rfc3339)
    username: str = ""
    proc_name: str = ""
    proc_cmd: str = ""
    proc_id: str = ""
    activity: str = ""
    file_path: str = ""
    source_addr: str = ""
    source_port: str = ""
    dest_addr: str = ""
    dest_port: str = ""
    bytes_sent: str = ""
    protocol: str = ""

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def as_row(self) -> list[str]:
        return [getattr(self, name) for name in self.columns()]

    @classmethod
    def for_process(cls, record: ProcessRecord) -> "Event":
        return cls(
            kind="Process",
            proc_name=record.name,
            proc_cmd=record.cmd,
            proc_id=str(record.id),
            activity="process_start",
        )

    @classmethod
    def for_file(cls, activity: str, path: str) -> "Event":
        return cls(kind="File", activity=activity, file_path=path)

    @classmethod
    def for_network(
        cls,
        source: tuple[str, int],
        dest: tuple[str, int],
        bytes_sent: int,
        protocol: str = "TCP",
    ) -> "Event":
        return cls(
            kind="Network",
            activity="network_connect",
            source_addr=str(source[0]),
            source_port=str(source[1]),
            dest_addr=str(dest[0]),
            dest_port=str(dest[1]),
            bytes_sent=str(bytes_sent),
            protocol=protocol,
        )

    @classmethod
    def for_pause(cls) -> "Event":
        return cls(kind="Pause", activity="pause")


@dataclass(slots=True)
class ErrorEvent:
    kind: str = "Error"
    timestamp: str = field(default_factory=now_rfc3339)
    message: str = ""

    @classmethod
    def from_error(cls, error: GenerationError) -> "ErrorEvent":
        return cls(message=f"{error.kind.value}: {error.message}")

    def as_row(self) -> list[str]:
        return [self.kind, self.timestamp, self.message]
