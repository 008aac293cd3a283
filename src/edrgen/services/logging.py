from __future__ import annotations
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


def _json_formatter(record: logging.LogRecord) -> str:
    base = {
        "level": record.levelname,
        "logger": record.name,
        "msg": record.getMessage(),
        "time": getattr(record, "asctime", None),
    }
    if hasattr(record, "extra"):
        try:
            base.update(record.extra)  # type: ignore[attr-defined]
        except (TypeError, ValueError):
            pass
    return json.dumps(base, ensure_ascii=False, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.asctime = self.formatTime(record)
        return _json_formatter(record)


def setup_logging(log_dir: str | Path, level: str = "INFO", *, console: bool = True) -> logging.Logger:
    """
    Диагностические логи генератора (не путать с аудит-логом событий):
      - консоль (stderr), если console=True
      - файл {log_dir}/edrgen.log (ротация)
    JSON формат, чтобы легко парсить.
    """
    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    logfile = logs_dir / "edrgen.log"

    logger = logging.getLogger("edrgen")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in logger.handlers:
        h.close()
    logger.handlers.clear()

    if console:
        stream_h = logging.StreamHandler()
        stream_h.setFormatter(JsonFormatter())
        stream_h.setLevel(logger.level)
        logger.addHandler(stream_h)

    file_h = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=3, encoding="utf-8", errors="backslashreplace")
    file_h.setFormatter(JsonFormatter())
    file_h.setLevel(logger.level)
    logger.addHandler(file_h)

    logger.propagate = False
    logger.info("logging.initialized", extra={"extra": {"logfile": str(logfile)}})
    return logger
