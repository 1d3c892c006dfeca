"""Logging service for anirip."""

import logging
import sys


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors each line by level"""

    grey = "\x1b[38;21m"
    blue = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    format_str = '[anirip] %(message)s'

    FORMATS = {
        logging.DEBUG: blue + format_str + reset,
        logging.INFO: grey + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        if getattr(record, 'success', False):
            log_fmt = self.green + self.format_str + self.reset
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class LoggingService:
    """Owns the handlers of the ``anirip`` logger tree"""

    def __init__(self, logger_name='anirip', log_file='anirip.log', console_level=logging.INFO):
        """
        Args:
            logger_name: name of the root logger for the package
            log_file: log file path, None disables file logging
            console_level: minimum level shown on the console
        """
        self.logger_name = logger_name
        self.log_file = log_file
        self.console_level = console_level
        self.logger = None
        self._setup_logger()

    def _setup_logger(self):
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(logging.DEBUG)

        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)
            handler.close()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.console_level)
        console_handler.setFormatter(ColoredFormatter())
        self.logger.addHandler(console_handler)

        if self.log_file:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

    def get_logger(self):
        return self.logger

    def set_level(self, level):
        """Change the console level

        Args:
            level: logging.DEBUG, logging.INFO, ...
        """
        self.console_level = level
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)


_logging_service = None


def setup_logging(logger_name='anirip', log_file='anirip.log', console_level=logging.INFO):
    """Configure the package logger once and return it; later calls only adjust the console level"""
    global _logging_service
    if _logging_service is None:
        _logging_service = LoggingService(logger_name, log_file, console_level)
    elif _logging_service.console_level != console_level:
        _logging_service.set_level(console_level)
    return _logging_service.get_logger()


def log_success(logger, message, *args):
    """INFO line rendered green on the console"""
    logger.info(message, *args, extra={'success': True})
