import pytest

from marketplace.services.activity_log_service import ActivityLogService
from marketplace.services.interpreter_gateway import InterpreterGateway
from tests.fakes import FakeCollection


@pytest.fixture
def log_collection():
    return FakeCollection()


@pytest.fixture
def activity_log(log_collection):
    return ActivityLogService(log_collection)


@pytest.fixture
def offline_gateway():
    """Gateway without an API key: always falls back"""
    return InterpreterGateway(client=None)
