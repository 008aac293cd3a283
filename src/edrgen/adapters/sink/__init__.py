from .csv_sink import CsvEventSink

__all__ = ["CsvEventSink"]
