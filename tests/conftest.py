import logging

import pytest

from app.config.constants import LOGGER_NAME
from app.config.settings import RelayConfig
from fakes import FakeChannel, FakeClock, FakeInitiator


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def log_records():
    """Records emitted on the application logger during the test"""
    handler = RecordingHandler()
    logger = logging.getLogger(LOGGER_NAME)
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler.records
    logger.removeHandler(handler)
    logger.setLevel(previous_level)


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def fake_initiator(fake_channel):
    return FakeInitiator(fake_channel)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def agent_config():
    return RelayConfig(call_type="agent", agent_id="agent-42", api_key="test-api-key")


@pytest.fixture
def generic_config():
    return RelayConfig(call_type="generic", api_key="test-api-key")
