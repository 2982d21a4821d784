"""Logging setup of the eventual tools (demo, scripts).

Inside a `Context`, the log entries go to the console, and optionally to a
file of the user log directory. Console entries are colored by level when
the output is a terminal.
"""

import logging
import os.path
import sys

from . import path as eventual_path
from ..deferred import HIDEBUG

_logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Formatter who colors the level and the logger name (ANSI codes)."""

    RESET = '\033[0m'
    NAME_COLOR = '\033[36m'
    LEVEL_COLORS = {
        HIDEBUG: '\033[34m',
        logging.DEBUG: '\033[34m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[31;1m',
    }

    def format(self, record):
        # Handlers share the record: the copy keeps the file output plain.
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, '')
        record.levelname = color + record.levelname + self.RESET
        record.name = self.NAME_COLOR + record.name + self.RESET
        return logging.Formatter.format(self, record)


class Context:
    """Install the log handlers on the root logger, and remove them on exit.

    Example:

        >>> with Context(filename='demo.log'):
        ...     logging.getLogger('eventual').info('Hello')
    """

    date_format = '%Y-%m-%d %H:%M:%S'
    string_format = '%(asctime)s %(levelname)-7s %(name)s - %(message)s'

    def __init__(self, filename=None, stream=None):
        """
        Args:
            filename (str, optional): name of a log file, created in the
                user log directory. By default, no file is written.
            stream (optional): console stream. Default to sys.stderr.
                Only the default stream is colored, if it's a terminal.
        """
        self._filename = filename
        self._stream = stream
        self._handlers = []

    def __enter__(self):
        logging.addLevelName(HIDEBUG, 'HIDEBUG')
        logging.captureWarnings(True)

        console = logging.StreamHandler(self._stream)
        colored = self._stream is None and sys.stderr.isatty()
        formatter_class = ColoredFormatter if colored else logging.Formatter
        console.setFormatter(formatter_class(fmt=self.string_format,
                                             datefmt=self.date_format))
        self._handlers.append(console)

        if self._filename:
            log_path = os.path.join(eventual_path.get_log_dir(),
                                    self._filename)
            try:
                file_handler = logging.FileHandler(log_path, mode='a')
            except OSError:
                _logger.warning('Unable to open the log file %s', log_path,
                                exc_info=True)
            else:
                file_handler.setFormatter(
                    logging.Formatter(fmt=self.string_format,
                                      datefmt=self.date_format))
                self._handlers.append(file_handler)

        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.addHandler(handler)

        # Until the config is loaded, show everything.
        set_debug_mode(True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        logging.captureWarnings(False)


def set_logs_level(levels):
    """Set the log level of each listed logger.

    Args:
        levels (dict): logger name -> level. A level is a number, a digit
            string or a level name (case-insensitive). Invalid levels are
            logged and skipped.

    Example:

        >>> set_logs_level({'eventual': 'info', 'eventual.scheduler': 'debug'})
    """
    for name, level in levels.items():
        if isinstance(level, str):
            level = int(level) if level.isdigit() else level.upper()
        try:
            logging.getLogger(name).setLevel(level)
        except (TypeError, ValueError):
            _logger.warning('Invalid log level "%s" for logger "%s". '
                            'Will be ignored.', level, name)


def set_debug_mode(debug):
    """Switch between the debug and the normal log levels.

    The HIDEBUG dispatch traces stay hidden in debug mode; they must be
    enabled with `set_logs_level()`.

    Args:
        debug (boolean): if True, 'eventual' logs at DEBUG and the root
            logger at INFO. Otherwise, INFO and WARNING.
    """
    if debug:
        logging.getLogger().setLevel(logging.INFO)
        logging.getLogger('eventual').setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.WARNING)
        logging.getLogger('eventual').setLevel(logging.INFO)
