"""
Logging for crnsim

All crnsim loggers live below the ``crnsim`` logger, which is configured
by :func:`setup_logger` the first time :func:`get_logger` is called. The
``CRNSIM_LOG`` environment variable, when set, overrides the level given to
:func:`setup_logger`; it accepts an integer or one of the level names in
:data:`NAMED_LOG_LEVELS`. Simulators log per-run details at the extra
``EXTENDED_DEBUG`` level, below DEBUG.
"""
import logging
import platform
import socket
import time
import os
import warnings
import crnsim

LOG_LEVEL_ENV_VAR = 'CRNSIM_LOG'
BASE_LOGGER_NAME = 'crnsim'
EXTENDED_DEBUG = 5
NAMED_LOG_LEVELS = {'NOTSET': logging.NOTSET,
                    'EXTENDED_DEBUG': EXTENDED_DEBUG,
                    'DEBUG': logging.DEBUG,
                    'INFO': logging.INFO,
                    'WARNING': logging.WARNING,
                    'ERROR': logging.ERROR,
                    'CRITICAL': logging.CRITICAL}
logging.addLevelName(EXTENDED_DEBUG, 'EXTENDED_DEBUG')


def formatter(time_utc=False):
    """
    Log line formatter, with millisecond time stamps

    Parameters
    ----------
    time_utc : bool, optional (default: False)
        Stamp entries in UTC instead of local time.
    """
    fmt = logging.Formatter(
        '%(asctime)s.%(msecs).3d - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S')
    if time_utc:
        fmt.converter = time.gmtime
    return fmt


def _level_from_environment(default):
    """ Log level from ``CRNSIM_LOG``, or ``default`` if it is unset """
    value = os.environ.get(LOG_LEVEL_ENV_VAR)
    if value is None:
        return default
    if value in NAMED_LOG_LEVELS:
        return NAMED_LOG_LEVELS[value]
    try:
        return int(value)
    except ValueError:
        raise ValueError('%s must be an integer or one of %s '
                         '(case-sensitive), got "%s"' % (
                             LOG_LEVEL_ENV_VAR,
                             ', '.join(NAMED_LOG_LEVELS), value))


def setup_logger(level=logging.WARNING, console_output=True, file_output=False,
                 time_utc=False, capture_warnings=True):
    """
    (Re)configure the ``crnsim`` base logger

    Existing handlers on the base logger are replaced. Library code should
    call :func:`get_logger` instead, which only configures the logger once.

    Parameters
    ----------
    level : int
        Log level such as ``logging.INFO``. ``CRNSIM_LOG`` takes precedence.
    console_output : bool
        Attach a stream handler (default True).
    file_output : str or False
        Also write the log to this file name (default False, no file).
    time_utc : bool
        Time stamps in UTC rather than local time.
    capture_warnings : bool
        Route the :mod:`warnings` module through logging (default True).

    Returns
    -------
    The ``crnsim`` :class:`logging.Logger`
    """
    log = logging.getLogger(BASE_LOGGER_NAME)
    log.setLevel(_level_from_environment(level))
    log.handlers = []

    handlers = []
    if console_output:
        handlers.append(logging.StreamHandler())
    if file_output:
        handlers.append(logging.FileHandler(file_output))
    fmt = formatter(time_utc=time_utc)
    for handler in handlers:
        handler.setFormatter(fmt)
        log.addHandler(handler)

    log.info('crnsim %s logging started', crnsim.__version__)
    if time_utc:
        log.info('Time stamps are UTC')
    else:
        offset = time.altzone if time.localtime().tm_isdst else time.timezone
        log.info('Time stamps are local time, UTC%+.2f hours',
                 -offset / 3600.0)
    log.debug('Python %s on %s (%s)', platform.python_version(),
              platform.platform(), socket.gethostname())

    logging.captureWarnings(capture_warnings)
    return log


def get_logger(logger_name=BASE_LOGGER_NAME, network=None, log_level=None,
               **kwargs):
    """
    Get a crnsim logger, setting up the base logger on first use

    Parameters
    ----------
    logger_name : str
        Logger name, normally ``__name__`` or ``self.__module__``.
    network : crnsim.ReactionNetwork, optional
        Prefix every message with this network's name (returns a
        :class:`NetworkLoggerAdapter`).
    log_level : bool or int, optional
        Level for this logger. None or False leaves it alone, True means
        DEBUG.
    **kwargs
        Passed to :func:`setup_logger` if the base logger does not exist
        yet; ignored with a warning otherwise.

    Examples
    --------
    >>> from crnsim.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug('Test message')
    """
    if BASE_LOGGER_NAME not in logging.Logger.manager.loggerDict:
        setup_logger(**kwargs)
    elif kwargs:
        warnings.warn('crnsim logger already exists, ignoring keyword '
                      'arguments to setup_logger')

    logger = logging.getLogger(logger_name)

    if log_level is not None and log_level is not False:
        if log_level is True:
            log_level = logging.DEBUG
        elif not isinstance(log_level, int):
            raise ValueError('log_level must be a boolean, integer or None')
        if logger.level != log_level:
            logger.debug('Log level set to %d', log_level)
            logger.setLevel(log_level)

    if network is None:
        return logger
    return NetworkLoggerAdapter(logger, {'network': network})


class NetworkLoggerAdapter(logging.LoggerAdapter):
    """ Prefixes log messages with ``[network name]`` """
    def process(self, msg, kwargs):
        return '[%s] %s' % (self.extra['network'].name, msg), kwargs
