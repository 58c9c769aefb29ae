import pytest

from streamauth.logging_config import error_aggregator
from streamauth.store.memory import MemoryCredentialStore

from .fixtures.fake_http import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture(autouse=True)
def _reset_error_aggregator():
    yield
    error_aggregator.reset()
