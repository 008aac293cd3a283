from __future__ import annotations
from typing import Iterator, Protocol, Sequence

from edrgen.domain import ErrorEvent, Event, GenerationError


class RowSource(Protocol):
    """Ordered producer of raw command rows; StopIteration marks end of input."""

    def __iter__(self) -> Iterator[Sequence[str]]: ...

    def close(self) -> None: ...


class EventSink(Protocol):
    """Durable audit log. Both calls return only after the record is persisted."""

    def log_event(self, event: Event) -> None: ...

    def log_error(self, error: GenerationError) -> ErrorEvent: ...

    def close(self) -> None: ...
