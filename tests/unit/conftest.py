import pytest

from wdsession.core import worker_context
from wdsession.transport.reporter import ConnectReporter
from wdsession.transport.session_cache import SessionCache


@pytest.fixture(autouse=True)
def _reset_worker_context() -> None:
    worker_context.reset()
    yield
    worker_context.reset()


@pytest.fixture
def session_cache() -> SessionCache:
    return SessionCache()


@pytest.fixture
def quiet_reporter() -> ConnectReporter:
    return ConnectReporter(output_enabled=False)
