"""Logging setup for the workbench service.

Every line reads ``LEVEL: timestamp : where : message``, where ``where`` is the
dotted module path plus function and line number, e.g.::

    INFO: 2024-02-17 13:01:23 : workbench.services.assignment_manager.assign.108 : Assigned agent/agt_1 to project proj_1

Modules only ever call ``get_logger(__name__)``; ``setup_logging`` is called
once from the application lifespan.
"""

import logging
import sys
import time
from typing import Optional, TextIO, Union

# Third-party loggers that drown out workbench output at INFO
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncpg": logging.WARNING,
    "redis": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def _where(record: logging.LogRecord) -> str:
    """Dotted location of a record, without repeating the module file name."""
    parts = record.name.split(".")
    stem = record.filename.rsplit(".", 1)[0]
    if parts[-1] != stem:
        parts.append(stem)
    return ".".join(parts + [record.funcName, str(record.lineno)])


class WorkbenchFormatter(logging.Formatter):
    converter = time.gmtime

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{record.levelname}: {self.formatTime(record, self.datefmt)} : "
            f"{_where(record)} : {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def resolve_level(level: Union[int, str, None]) -> int:
    """Turn a level number or name ("debug", "INFO") into a logging level."""
    if isinstance(level, int):
        return level
    if level:
        named = logging.getLevelName(level.strip().upper())
        if isinstance(named, int):
            return named
    return logging.INFO


def setup_logging(
    level: Union[int, str, None] = None, stream: Optional[TextIO] = None
) -> None:
    """Send all logging to one stream in the workbench format.

    ``level`` defaults to ``LOG_LEVEL``. SQL statement logging stays quiet
    unless ``DATABASE_ECHO`` is on.
    """
    from workbench.config import settings

    level = resolve_level(level if level is not None else settings.log_level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(WorkbenchFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("workbench").setLevel(level)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
