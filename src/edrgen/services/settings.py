# src/edrgen/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Optional, Dict
from edrgen.config import const


def _parse_env_file(path: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return data
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


_OVERRIDABLE = {
    "delimiter",
    "outfile",
    "log_dir",
    "log_level",
    "grace_ms",
    "accept_timeout_s",
    "connect_timeout_s",
    "allow_processes",
}


@dataclass(frozen=True, slots=True)
class Settings:
    delimiter: str = const.DEFAULT_DELIMITER
    outfile: Path = Path(const.DEFAULT_OUTFILE)
    log_dir: Path = Path(const.DEFAULT_LOG_DIR)
    log_level: str = const.DEFAULT_LOG_LEVEL
    grace_ms: int = const.DEFAULT_GRACE_MS
    accept_timeout_s: float = const.DEFAULT_ACCEPT_TIMEOUT_S
    connect_timeout_s: float | None = None
    allow_processes: bool = True

    def __post_init__(self) -> None:
        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.grace_ms < 0:
            raise ValueError("grace_ms must be >= 0")

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        env_file_vars = _parse_env_file(env_file) if env_file else {}

        def pick_env(key: str, default: Optional[str] = None) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or (default or "")

        connect_timeout = pick_env("EDRGEN_CONNECT_TIMEOUT")
        return Settings(
            delimiter=pick_env("EDRGEN_DELIMITER", const.DEFAULT_DELIMITER),
            outfile=Path(pick_env("EDRGEN_OUTFILE", const.DEFAULT_OUTFILE)).expanduser(),
            log_dir=Path(pick_env("EDRGEN_LOG_DIR", const.DEFAULT_LOG_DIR)).expanduser(),
            log_level=pick_env("EDRGEN_LOG_LEVEL", const.DEFAULT_LOG_LEVEL).upper(),
            grace_ms=int(pick_env("EDRGEN_GRACE_MS", str(const.DEFAULT_GRACE_MS))),
            accept_timeout_s=float(pick_env("EDRGEN_ACCEPT_TIMEOUT", str(const.DEFAULT_ACCEPT_TIMEOUT_S))),
            connect_timeout_s=float(connect_timeout) if connect_timeout else None,
            allow_processes=_as_bool(pick_env("EDRGEN_ALLOW_PROCESSES", "1")),
        )

    def with_overrides(self, **kw) -> "Settings":
        # перегружать можно только известные поля; None = «не задано в CLI»
        safe = {k: v for k, v in kw.items() if k in _OVERRIDABLE and v is not None}
        for key in ("outfile", "log_dir"):
            if key in safe:
                safe[key] = Path(safe[key])
        return replace(self, **safe)
