from .csv_source import CsvRowSource

__all__ = ["CsvRowSource"]
