"""
Queue-based logging for the simulator.

Records from the "arbsim" logger tree are put on a bounded queue and
written by a listener thread, so the price, detection and dashboard
coroutines never wait on console or file I/O.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from arbsim.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


QUIET_LOGGERS = ("asyncio", "uvicorn.access", "httpx")


class MillisecondFormatter(logging.Formatter):
    """Timestamps with millisecond precision; ticks are sub-second."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime(datefmt or LOG_DATE_FORMAT)
        return f"{stamp}.{int(record.msecs):03d}"


def _build_handlers(level: int, log_file: Path | None) -> list[logging.Handler]:
    formatter = MillisecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # The file always gets debug detail, whatever the console level.
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


class AsyncLogger:
    """
    Attaches a QueueHandler to one logger and drains it on a thread.

    Usable as a context manager; stop() flushes whatever is still queued.
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._handler = QueueHandler(self._queue)
        self._listener: QueueListener | None = None

    def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = QueueListener(
            self._queue,
            *_build_handlers(self._level, self._log_file),
            respect_handler_level=True,
        )
        self._logger.setLevel(self._level)
        self._logger.addHandler(self._handler)
        self._listener.start()

    def stop(self) -> None:
        if self._listener is None:
            return
        self._logger.removeHandler(self._handler)
        self._listener.stop()
        for handler in self._listener.handlers:
            handler.close()
        self._listener = None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
) -> AsyncLogger:
    """
    Route the "arbsim" logger tree through a started AsyncLogger.

    Handlers already on the root logger are removed so records are not
    written twice.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path; parent directories are created.

    Returns:
        The running AsyncLogger. Call stop() on shutdown.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    async_logger = AsyncLogger(
        "arbsim",
        level=numeric_level,
        log_file=Path(log_file) if log_file else None,
    )
    async_logger.start()
    return async_logger
