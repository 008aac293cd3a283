# src/edrgen/apps/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer
from rich import print
from rich.console import Console

# .env читаем один раз (EDRGEN_OUTFILE, EDRGEN_GRACE_MS, ...)
load_dotenv(find_dotenv(usecwd=True))

from edrgen import __version__
from edrgen.apps.bootstrap import build_commander
from edrgen.domain import ARITY, USAGE, GenerationError, SinkUnavailableError
from edrgen.services.logging import setup_logging
from edrgen.services.settings import Settings

app = typer.Typer(help="EDR event generator: executes a command file and writes an audit log of every action.")
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", help="Показать версию и выйти", is_eager=True),
):
    """Creates EDR events to verify detection and classification."""
    if version:
        typer.echo(f"edrgen {__version__}")
        raise typer.Exit()


@app.command("run")
def run(
    input_file: Path = typer.Argument(..., help="Файл с командами (по одной на строку)"),
    delimiter: Optional[str] = typer.Option(None, "--delimiter", "-d", help="Разделитель полей во входном файле (по умолчанию ',')"),
    outfile: Optional[Path] = typer.Option(None, "--outfile", "-o", help="Куда писать аудит-лог событий (по умолчанию 'log.csv')"),
    grace_ms: Optional[int] = typer.Option(None, "--grace-ms", help="Пауза между kill и проверкой, мс"),
    no_processes: bool = typer.Option(False, "--no-processes", help="Запретить запуск дочерних процессов"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Дублировать диагностический лог в stderr"),
):
    """
    Выполнить команды из INPUT_FILE по порядку и записать событие для каждой.
    """
    try:
        settings = Settings.from_sources().with_overrides(
            delimiter=delimiter,
            outfile=outfile,
            grace_ms=grace_ms,
            allow_processes=False if no_processes else None,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))

    setup_logging(settings.log_dir, settings.log_level, console=verbose)

    try:
        commander = build_commander(input_file, settings)
    except GenerationError as e:
        err_console.print(f"Encountered an unexpected error when setting up: {e}", markup=False)
        raise typer.Exit(code=1)

    commands_processed = 0
    try:
        while commander.read_next():
            commands_processed += 1
        errors = commander.get_num_errors()
    except SinkUnavailableError as e:
        # без аудит-лога прогон теряет смысл: останавливаемся
        commander.abort()
        err_console.print(f"Audit log is unavailable, aborting the run: {e}", markup=False)
        raise typer.Exit(code=2)

    if commands_processed <= 0:
        err_console.print("Input File was empty or was of bad format. No Commands Processed")
        raise typer.Exit(code=1)
    print(f"Done. {commands_processed} Instructions Found. Encountered {errors} error(s).")


@app.command("verbs")
def verbs():
    """Показать поддерживаемые команды и их формат."""
    for kind, fields in ARITY.items():
        typer.echo(f"{kind.value:13} min_fields={fields}  {USAGE[kind]}")


if __name__ == "__main__":
    app()
