import pytest
from loguru import logger

import fleascope.util
from fleascope.config import ScopeConfig
from fleascope.device.mock import MockFleaTerminal
from fleascope.util import TEST_LOGLEVEL


@pytest.fixture(scope="session", autouse=True)
def client_log():
    fleascope.util.start_client_log(
        log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL
    )
    yield
    fleascope.util.shutdown_client_log()


@pytest.fixture(autouse=True, scope="function")
def log(request):
    logger.info("STARTED Test '{}'", request.node.originalname)
    yield
    logger.info("COMPLETED Test '{}'", request.node.originalname)


@pytest.fixture
def fast_config():
    """Short timeouts, so fault injection tests finish quickly."""
    return ScopeConfig(
        command_timeout=0.5,
        retries=1,
        poll_interval=0.01,
        cancel_drain_timeout=0.1,
        init_timeout=0.1,
    )


@pytest.fixture
def terminal():
    return MockFleaTerminal()
