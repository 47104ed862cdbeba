import logging
import pytest
import crnsim.logging
from crnsim.logging import get_logger, NetworkLoggerAdapter, \
    EXTENDED_DEBUG, BASE_LOGGER_NAME
from crnsim.examples import birth_death


def test_get_logger_namespace():
    logger = get_logger('crnsim.tests.namespace')
    assert isinstance(logger, logging.Logger)
    assert logger.name == 'crnsim.tests.namespace'
    assert BASE_LOGGER_NAME in logging.Logger.manager.loggerDict


def test_network_logger_adapter(caplog):
    logger = get_logger('crnsim.tests.adapter', network=birth_death.network)
    assert isinstance(logger, NetworkLoggerAdapter)
    msg, _ = logger.process('hello', {})
    assert msg == '[birth_death] hello'
    with caplog.at_level(logging.INFO, logger='crnsim.tests.adapter'):
        logger.info('network message')
    assert '[birth_death] network message' in caplog.text


def test_log_level():
    logger = get_logger('crnsim.tests.level', log_level=True)
    assert logger.level == logging.DEBUG
    logger = get_logger('crnsim.tests.level', log_level=EXTENDED_DEBUG)
    assert logger.level == EXTENDED_DEBUG
    with pytest.raises(ValueError):
        get_logger('crnsim.tests.level', log_level='loud')


def test_level_from_environment(monkeypatch):
    monkeypatch.delenv(crnsim.logging.LOG_LEVEL_ENV_VAR, raising=False)
    assert crnsim.logging._level_from_environment(logging.WARNING) == \
        logging.WARNING
    monkeypatch.setenv(crnsim.logging.LOG_LEVEL_ENV_VAR, '10')
    assert crnsim.logging._level_from_environment(logging.WARNING) == \
        logging.DEBUG
    monkeypatch.setenv(crnsim.logging.LOG_LEVEL_ENV_VAR, 'EXTENDED_DEBUG')
    assert crnsim.logging._level_from_environment(logging.WARNING) == \
        EXTENDED_DEBUG
    monkeypatch.setenv(crnsim.logging.LOG_LEVEL_ENV_VAR, 'chatty')
    with pytest.raises(ValueError):
        crnsim.logging._level_from_environment(logging.WARNING)


def test_formatter_utc():
    import time
    assert crnsim.logging.formatter(time_utc=True).converter is time.gmtime
