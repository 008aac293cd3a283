from .contracts import EventSink, RowSource

__all__ = ["EventSink", "RowSource"]
