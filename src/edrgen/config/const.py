# src/edrgen/config/const.py
from __future__ import annotations

# значения по умолчанию (перекрываются .env/ENV и опциями CLI)
DEFAULT_DELIMITER: str = ","
DEFAULT_OUTFILE: str = "log.csv"
DEFAULT_LOG_DIR: str = "logs"
DEFAULT_LOG_LEVEL: str = "INFO"

# пауза между kill и повторной проверкой таблицы процессов
DEFAULT_GRACE_MS: int = 100

# сколько ждёт acceptor self-test'а входящего соединения
DEFAULT_ACCEPT_TIMEOUT_S: float = 30.0

LOOPBACK_HOST: str = "127.0.0.1"
