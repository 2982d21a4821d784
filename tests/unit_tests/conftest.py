import logging

import pytest

from eventual import LoopScheduler
from eventual.common import config


class FakeClock:
    """Clock who only moves when someone sleeps."""

    def __init__(self):
        self.now = 0.0

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    """LoopScheduler running on a fake clock: delays are instant."""
    return LoopScheduler(clock=clock.time, sleep=clock.sleep)


@pytest.fixture(autouse=True)
def default_config(request):
    """Each test starts with the default config values, and no log level."""
    config.reset()
    root_level = logging.getLogger().level

    def restore():
        config.reset()
        logging.getLogger().setLevel(root_level)
        logging.getLogger('eventual').setLevel(logging.NOTSET)

    request.addfinalizer(restore)
