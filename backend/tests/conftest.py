import pytest

from helpers import EventLog, ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def events():
    return EventLog()
