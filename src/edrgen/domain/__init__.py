from .errors import ErrorKind, GenerationError, ProcessStopError, SinkUnavailableError
from .types import (
    ARITY,
    USAGE,
    Action,
    ActionKind,
    ConnectAction,
    ConnectSelfAction,
    ErrorEvent,
    Event,
    FileAction,
    KillCount,
    PauseAction,
    ProcessAction,
    ProcessRecord,
    build_action,
)

__all__ = [
    "ErrorKind",
    "GenerationError",
    "ProcessStopError",
    "SinkUnavailableError",
    "ARITY",
    "USAGE",
    "Action",
    "ActionKind",
    "ConnectAction",
    "ConnectSelfAction",
    "ErrorEvent",
    "Event",
    "FileAction",
    "KillCount",
    "PauseAction",
    "ProcessAction",
    "ProcessRecord",
    "build_action",
]
