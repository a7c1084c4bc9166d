import logging
import os
import inspect

from enum import Enum

class LogLevel(Enum):
    """
    An enumeration which represents the log levels.

    Attributes:
        VERBOSE (`int`): All possible logs are printed, including every template element the expander drops.
        INFO (`int`): Build steps, ledger inserts and manifest writes are printed.
        WARNING (`int`): Only warnings and errors are printed. Default log level.
        ERROR (`int`): Only errors are printed. Dropped ledger records and missing manifests go unreported.
    """
    VERBOSE = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

_level_to_logging = {
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

_logger = logging.getLogger("permutate")

class _LocationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "location"):
            record.location = record.module
        return True

__initilized_instance: bool = False

def _level_from_env() -> LogLevel:
    name = os.environ.get("PERMUTATE_LOG_LEVEL")

    if name is None:
        return LogLevel.WARNING

    try:
        return LogLevel[name.upper()]
    except KeyError:
        return LogLevel.WARNING

def is_initialized() -> bool:
    """
    A function which checks if the permutate logging facade has been initialized.

    Returns:
        `bool`: A flag indicating whether the library has been initialized.
    """

    global __initilized_instance

    return __initilized_instance

def initialize(log_level: LogLevel = None):
    """
    A function which initializes the permutate library. Calling it more than
    once is harmless, later calls only change the log level.

    Args:
        log_level (`LogLevel`): The log level, which is one of the following:
            LogLevel.VERBOSE
            LogLevel.INFO
            LogLevel.WARNING
            LogLevel.ERROR
            If not given, the level is read from the PERMUTATE_LOG_LEVEL
            environment variable and defaults to LogLevel.WARNING.
    """

    global __initilized_instance

    if __initilized_instance:
        if log_level is not None:
            set_log_level(log_level)
        return

    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s %(location)s] %(message)s"))
        handler.addFilter(_LocationFilter())
        _logger.addHandler(handler)
        _logger.propagate = False

    set_log_level(log_level if log_level is not None else _level_from_env())

    __initilized_instance = True

def set_log_level(level: LogLevel):
    """
    A function which sets the log level of the permutate logger.

    Args:
        level (`LogLevel`): The new log level.
    """

    _logger.setLevel(_level_to_logging[level])

def log(text: str, end: str = '\n', level: LogLevel = LogLevel.ERROR, stack_offset: int = 1):
    """
    A function which logs a message at the specified log level.

    Args:
        text (`str`): The message to log.
        end (`str`): Appended to the message, kept for print-like call sites.
        level (`LogLevel`): The log level.
        stack_offset (`int`): How many frames up the reported call site is.
    """

    initialize()

    logging_level = _level_to_logging[level]

    if not _logger.isEnabledFor(logging_level):
        return

    frame = inspect.stack()[stack_offset]
    location = f"{os.path.basename(frame.filename)}:{frame.lineno}"

    _logger.log(logging_level, (text + end).rstrip('\n'), extra={"location": location})

def log_error(text: str, end: str = '\n'):
    """
    A function which logs an error message.

    Args:
        text (`str`): The message to log.
    """

    log(text, end, LogLevel.ERROR, 2)

def log_warning(text: str, end: str = '\n'):
    """
    A function which logs a warning message.

    Args:
        text (`str`): The message to log.
    """

    log(text, end, LogLevel.WARNING, 2)

def log_info(text: str, end: str = '\n'):
    """
    A function which logs an info message.

    Args:
        text (`str`): The message to log.
    """

    log(text, end, LogLevel.INFO, 2)

def log_verbose(text: str, end: str = '\n'):
    """
    A function which logs a verbose message.

    Args:
        text (`str`): The message to log.
    """

    log(text, end, LogLevel.VERBOSE, 2)
