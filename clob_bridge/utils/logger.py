import json
import logging
import os
import queue
import signal
import sys
import threading
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from typing import Optional, TextIO, Union

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "thread_label"}

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[38;20m",
    logging.INFO: "\x1b[38;20m",
    logging.WARNING: "\x1b[33;20m",
    logging.ERROR: "\x1b[31;20m",
    logging.CRITICAL: "\x1b[31;1m",
}
_RESET = "\x1b[0m"


def _thread_label(record: logging.LogRecord) -> str:
    # threadName/thread are captured where the record was created, not in the listener
    return f"{record.threadName} ({record.thread})"


class TextFormatter(logging.Formatter):
    """Human-readable lines, optionally colored by level"""

    layout = "%(asctime)s - %(name)s - %(levelname)s - %(thread_label)s - %(funcName)s() - %(message)s"

    def __init__(self, colored: bool = False):
        super().__init__(self.layout)
        self.colored = colored

    def format(self, record):
        record.thread_label = _thread_label(record)
        line = super().format(record)
        if not self.colored:
            return line
        return f"{_LEVEL_COLORS.get(record.levelno, _LEVEL_COLORS[logging.INFO])}{line}{_RESET}"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record so a parent process can parse stderr line by line.
    Fields passed through ``extra=`` are emitted as top-level keys.
    """

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "thread": _thread_label(record),
        }
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RunIdFilter(logging.Filter):
    """Stamp every record with the process run id unless the caller set one"""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record):
        if not hasattr(record, "run_id"):
            record.run_id = self.run_id
        return True


class ThreadLogger:
    """
    Named logger whose records are queued and written by a listener thread,
    so slow sinks never hold up command handling.

    Output handlers are attached with ``add_handler``; until one is attached
    records simply wait in the queue. SIGUSR1 makes every handler more verbose,
    SIGUSR2 less.
    """

    def __init__(self, *, name: str, level: str = "INFO", handle_signals: bool = True):
        self.name = name
        self.records: queue.Queue = queue.Queue(-1)
        self.handlers: list[logging.Handler] = []
        self.listener: Optional[QueueListener] = None

        if level.upper() not in LEVEL_NAMES:
            print(f"Unknown log level '{level}', using INFO", file=sys.stderr)
        self.level = getattr(logging, level.upper(), logging.INFO)

        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG)
        # A fresh ThreadLogger owns the named logger outright
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
        for log_filter in list(self.logger.filters):
            self.logger.removeFilter(log_filter)
        self.logger.addHandler(QueueHandler(self.records))

        if handle_signals:
            self.install_signal_handlers()

    ########################
    ### Output handlers ###
    ########################

    def add_handler(self, handler: logging.Handler):
        self.handlers.append(handler)
        self._rebuild_listener()
        self.logger.debug(f"Log handler attached: {type(handler).__name__}")

    def remove_handler(self, handler: logging.Handler):
        if handler not in self.handlers:
            return
        self.handlers.remove(handler)
        self._rebuild_listener()
        self.logger.debug(f"Log handler detached: {type(handler).__name__}")

    def _rebuild_listener(self):
        # QueueListener takes its handlers at construction time
        if self.listener is not None:
            self.listener.stop()
            self.listener = None
        if self.handlers:
            self.listener = QueueListener(self.records, *self.handlers, respect_handler_level=True)
            self.listener.start()

    ##################
    ### Verbosity ###
    ##################

    def install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            self.logger.warning("Verbosity signals can only be installed from the main thread")
            return
        if not (hasattr(signal, "SIGUSR1") and hasattr(signal, "SIGUSR2")):
            self.logger.warning("Platform does not support SIGUSR1/SIGUSR2 signals")
            return
        signal.signal(signal.SIGUSR1, self._on_signal)
        signal.signal(signal.SIGUSR2, self._on_signal)
        pid = os.getpid()
        self.logger.debug(f"Verbosity signals: kill -SIGUSR1 {pid} (more), kill -SIGUSR2 {pid} (less)")

    def _on_signal(self, signum, frame):
        step = -10 if signum == signal.SIGUSR1 else 10
        target = min(max(self.level + step, logging.DEBUG), logging.CRITICAL)
        if target == self.level:
            self.logger.critical(f"Log level already at {logging.getLevelName(self.level)}")
            return
        self.set_level(target)
        self.logger.critical(f"Log level changed to {logging.getLevelName(self.level)} for all handlers")

    def set_level(self, level: Union[int, str]):
        """Apply one level to every attached handler"""
        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)
        self.level = level
        for handler in self.handlers:
            handler.setLevel(level)

    def get_logger(self) -> logging.Logger:
        return self.logger

    def shutdown(self) -> bool:
        """Drain queued records and stop the listener thread"""
        if self.listener is None:
            return False
        self.listener.stop()
        self.listener = None
        return True


def create_console_handler(*, level=logging.INFO, fmt: str = "json",
                           stream: Optional[TextIO] = None) -> logging.Handler:
    """
    stdout belongs to the line protocol, so console logs go to stderr
    unless another stream is given.
    """
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(TextFormatter(colored=getattr(stream, "isatty", lambda: False)()))
    return handler


def create_file_handler(*, log_file: str, level=logging.DEBUG, rotate: bool = True,
                        when: str = "midnight", backup_count: int = 10) -> logging.Handler:
    """JSON lines to a file, rotated daily by default"""
    directory = os.path.dirname(log_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if rotate:
        handler = TimedRotatingFileHandler(log_file, when=when, backupCount=backup_count)
    else:
        handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler
