# src/edrgen/adapters/rows/csv_source.py
from __future__ import annotations
import csv
import sys
from pathlib import Path
from typing import Iterator

from edrgen.domain import ErrorKind, GenerationError


class CsvRowSource:
    """
    Строки команд из файла с разделителем:
      - без заголовка, число колонок в строках может отличаться
      - пустые строки пропускаются
      - байты вне UTF-8 сохраняются через surrogateescape и уходят в ОС как есть
      - размер поля не ограничен
    """

    def __init__(self, path: str | Path, delimiter: str = ",") -> None:
        self.path = Path(path)
        csv.field_size_limit(sys.maxsize)
        try:
            self._fh = open(self.path, "r", newline="", encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise GenerationError.from_os_error(
                ErrorKind.IO,
                e,
                f"The following error was encountered when attempting to open {self.path} for processing: {e}",
            ) from None
        self._reader = csv.reader(self._fh, delimiter=delimiter)

    def __iter__(self) -> Iterator[list[str]]:
        return self

    def __next__(self) -> list[str]:
        while True:
            try:
                row = next(self._reader)
            except csv.Error as e:
                raise GenerationError(
                    ErrorKind.INPUT_FORMAT, f"Line {self._reader.line_num} of {self.path} could not be parsed: {e}"
                ) from None
            if row:
                return row

    def close(self) -> None:
        self._fh.close()
