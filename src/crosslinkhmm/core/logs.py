"""

Logging Core Module

========================================================================

Every module logs through the one ``logger`` defined here. Messages go
to the console (stderr) and, optionally, to a log file; each stream has
its own verbosity. Worker threads share the same streams, so writing to
a stream is serialized with a lock.

"""

from abc import ABC, abstractmethod
from collections import namedtuple
from datetime import datetime
from enum import IntEnum
from functools import cache, wraps
from pathlib import Path
from sys import stderr
from threading import Lock
from traceback import format_exception, format_exception_only
from typing import Callable, Optional, TextIO


class Level(IntEnum):
    """ Level of a logging message. """
    FATAL = -3
    ERROR = -2
    WARNING = -1
    STATUS = 0
    TASK = 1
    ACTION = 2
    ROUTINE = 3
    DETAIL = 4


DEFAULT_COLOR = True
DEFAULT_EXIT_ON_ERROR = False
DEFAULT_VERBOSITY = Level.STATUS
FILE_VERBOSITY = Level.DETAIL
EXC_INFO_VERBOSITY = Level.TASK


class Message(object):
    """ Message with a logging level. """
    __slots__ = ["level", "content"]

    def __init__(self, level: Level, content: object):
        self.level = level
        self.content = content

    def __str__(self):
        content = self.content
        if isinstance(content, BaseException):
            formatter = format_exception if exc_info() else format_exception_only
            return "".join(formatter(content)).rstrip()
        return content if isinstance(content, str) else str(content)


class Stream(ABC):
    """ Log to a stream, such as to the console or to a file. """
    __slots__ = ["verbosity", "formatter", "_lock"]

    def __init__(self,
                 verbosity: int,
                 formatter: Callable[[Message], str]):
        self.verbosity = verbosity
        self.formatter = formatter
        self._lock = Lock()

    @property
    @abstractmethod
    def stream(self) -> TextIO:
        """ Text stream to which messages will be written. """

    def log(self, message: Message):
        """ Log a message if its level is within the verbosity. """
        if message.level <= self.verbosity:
            text = self.formatter(message)
            with self._lock:
                self.stream.write(text)


class ConsoleStream(Stream):
    """ Log to the console's stderr stream. """

    @property
    def stream(self):
        return stderr


class FileStream(Stream):
    """ Log to a file, which is opened the first time it is needed. """
    __slots__ = ["file_path", "_file"]

    def __init__(self, file_path: str | Path, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.file_path = Path(file_path)
        self._file = None

    @property
    def stream(self):
        if self._file is None:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.file_path, "a")
        return self._file

    def close(self):
        """ Close the file stream. """
        if self._file is not None:
            self._file.close()
            self._file = None


def format_console_plain(message: Message):
    """ Format a message to log on the console without color. """
    return f"{message.level.name: <8}{message}\n"


class AnsiCode(object):
    """ Format text with ANSI codes. """
    START = "\033["
    END = "m"
    RESET = 0
    BOLD = 1

    @classmethod
    @cache
    def format_color(cls, color: int):
        """ Make a format string for one 256-color code. """
        if not 0 <= color < 256:
            raise ValueError(f"Invalid ANSI 256-color code: {color}")
        return f"{cls.START}38;5;{color}{cls.END}"

    @classmethod
    @cache
    def format(cls, code: int):
        """ Make a format string for one ANSI code. """
        return f"{cls.START}{code}{cls.END}"

    @classmethod
    @cache
    def reset(cls):
        return cls.format(cls.RESET)


LEVEL_COLORS = {
    Level.FATAL: "".join([AnsiCode.format_color(198),
                          AnsiCode.format(AnsiCode.BOLD)]),
    Level.ERROR: AnsiCode.format_color(160),
    Level.WARNING: AnsiCode.format_color(214),
    Level.STATUS: AnsiCode.format_color(28),
    Level.TASK: AnsiCode.format_color(38),
    Level.ACTION: AnsiCode.format_color(69),
    Level.ROUTINE: AnsiCode.format_color(147),
    Level.DETAIL: AnsiCode.format_color(247),
}


def format_console_color(message: Message):
    """ Format a message to log on the console with color. """
    fmt = LEVEL_COLORS.get(message.level, AnsiCode.reset())
    return "".join([fmt, format_console_plain(message), AnsiCode.reset()])


def format_logfile(message: Message):
    """ Format a message to write into the log file. """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")
    return f"[{timestamp}] {message.level.name}\n{message}\n\n"


class Logger(object):
    """ Log messages to the console and to a file. """
    __slots__ = ["console_stream", "file_stream", "exit_on_error"]

    def __init__(self,
                 console_stream: ConsoleStream | None = None,
                 file_stream: FileStream | None = None,
                 exit_on_error: bool = DEFAULT_EXIT_ON_ERROR):
        self.console_stream = console_stream
        self.file_stream = file_stream
        self.exit_on_error = exit_on_error

    def _log(self, level: Level, content: object):
        message = Message(level, content)
        if level <= Level.ERROR and self.exit_on_error:
            if isinstance(content, BaseException):
                raise content
            raise RuntimeError(str(message))
        if self.console_stream is not None:
            self.console_stream.log(message)
        if self.file_stream is not None:
            self.file_stream.log(message)

    def fatal(self, content: object):
        self._log(Level.FATAL, content)

    def error(self, content: object):
        self._log(Level.ERROR, content)

    def warning(self, content: object):
        self._log(Level.WARNING, content)

    def status(self, content: object):
        self._log(Level.STATUS, content)

    def task(self, content: object):
        self._log(Level.TASK, content)

    def action(self, content: object):
        self._log(Level.ACTION, content)

    def routine(self, content: object):
        self._log(Level.ROUTINE, content)

    def detail(self, content: object):
        self._log(Level.DETAIL, content)


logger = Logger()


LoggerConfig = namedtuple("LoggerConfig",
                          ["verbosity",
                           "log_file_path",
                           "log_color",
                           "exit_on_error"])


def erase_config():
    """ Erase the existing logger configuration. """
    if logger.file_stream is not None:
        logger.file_stream.close()
    logger.console_stream = None
    logger.file_stream = None
    logger.exit_on_error = DEFAULT_EXIT_ON_ERROR


def set_config(verbosity: int = DEFAULT_VERBOSITY,
               log_file_path: str | Path | None = None,
               log_color: bool = DEFAULT_COLOR,
               exit_on_error: bool = DEFAULT_EXIT_ON_ERROR):
    """ Configure the main logger with streams and verbosity. """
    erase_config()
    logger.console_stream = ConsoleStream(verbosity,
                                          (format_console_color
                                           if log_color
                                           else format_console_plain))
    if log_file_path is not None:
        logger.file_stream = FileStream(log_file_path,
                                        FILE_VERBOSITY,
                                        format_logfile)
    logger.exit_on_error = exit_on_error


def get_config():
    """ Get the configuration parameters of the logger. """
    if logger.console_stream is not None:
        verbosity = logger.console_stream.verbosity
        log_color = logger.console_stream.formatter is format_console_color
    else:
        verbosity = DEFAULT_VERBOSITY
        log_color = DEFAULT_COLOR
    if logger.file_stream is not None:
        log_file_path = logger.file_stream.file_path
    else:
        log_file_path = None
    return LoggerConfig(verbosity=verbosity,
                        log_file_path=log_file_path,
                        log_color=log_color,
                        exit_on_error=logger.exit_on_error)


def exc_info():
    """ Whether to log exception tracebacks. """
    return get_config().verbosity >= EXC_INFO_VERBOSITY


def log_exceptions(default: Optional[Callable]):
    """ If any exception occurs, log it as fatal and return the default
    (called with no arguments) instead of raising it. """

    def decorator(func: Callable):

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as error:
                logger.fatal(error)
                return default() if default is not None else None

        return wrapper

    return decorator


def restore_config(func: Callable):
    """ After the function exits, restore the logging configuration that
    was in place before the function ran. """

    @wraps(func)
    def wrapper(*args, **kwargs):
        config = get_config()
        try:
            return func(*args, **kwargs)
        finally:
            set_config(**config._asdict())

    return wrapper


# Log to the console by default when the package is used as an API.
set_config()

########################################################################
#                                                                      #
# © Copyright 2024, the CROSSLINK-HMM Developers.                     #
#                                                                      #
# This file is part of CROSSLINK-HMM.                                  #
#                                                                      #
# CROSSLINK-HMM is free software; you can redistribute it and/or       #
# modify it under the terms of the GNU General Public License as       #
# published by the Free Software Foundation; either version 3 of the   #
# License, or (at your option) any later version.                      #
#                                                                      #
# CROSSLINK-HMM is distributed in the hope that it will be useful, but #
# WITHOUT ANY WARRANTY; without even the implied warranty of MERCHANT- #
# ABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU General     #
# Public License for more details.                                     #
#                                                                      #
# You should have received a copy of the GNU General Public License    #
# along with CROSSLINK-HMM; if not, see                                #
# <https://www.gnu.org/licenses>.                                      #
#                                                                      #
########################################################################
