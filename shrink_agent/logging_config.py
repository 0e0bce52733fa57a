import logging
import logging.handlers
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import Settings

FILE_FORMAT = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d in %(funcName)s() - %(message)s"


def _console_handler(level: str) -> RichHandler:
    # stderr keeps step output apart from anything the CLI prints to stdout
    handler = RichHandler(
        console=Console(stderr=True, width=120),
        show_time=True,
        show_level=True,
        show_path=True,
        markup=True,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


def _file_handler(settings: Settings) -> logging.Handler:
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=settings.log_file_path,
        when="midnight",
        interval=1,
        backupCount=settings.log_retention_days,
        encoding="utf-8",
    )
    handler.setLevel(settings.log_level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(settings: Settings) -> Optional[logging.Handler]:
    """Route the run's log to the console and, unless disabled, a rotating file.

    Returns the file handler, or None in console-only mode.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    # A second setup in the same process must not double every line
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(_console_handler(settings.log_level))
    file_handler = _file_handler(settings) if settings.log_to_file else None
    if file_handler is not None:
        root_logger.addHandler(file_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)

    if file_handler is None:
        logging.info(f"[bold green]Logging initialized[/] - console only, level [yellow]{settings.log_level}[/]")
    else:
        logging.info(
            f"[bold green]Logging initialized[/] - "
            f"File: [cyan]{settings.log_file_path}[/], "
            f"Level: [yellow]{settings.log_level}[/], "
            f"Retention: [blue]{settings.log_retention_days}[/] days"
        )
    return file_handler
