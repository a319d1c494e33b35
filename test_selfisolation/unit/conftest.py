import datetime
import logging

import pytest

from selfisolation import paths
from selfisolation.configuration import IsolationConfiguration
from selfisolation.global_context import GlobalContext
from selfisolation.records import MetricsRecorder
from selfisolation.storage import InMemoryKeyValueStore
from selfisolation.time import SimulatedDateProvider

default_config = paths.configs_path / "defaults/isolation/isolation_configuration.yaml"

# disable logging for testing
logging.disable(logging.CRITICAL)


@pytest.fixture(autouse=True)
def reset_global_context():
    yield
    GlobalContext.reset()


@pytest.fixture(name="configuration")
def make_configuration():
    return IsolationConfiguration.from_file(default_config, country="england")


@pytest.fixture(name="date_provider")
def make_date_provider():
    return SimulatedDateProvider(
        initial_date="2021-03-01 9:00", timezone=datetime.timezone.utc
    )


@pytest.fixture(name="today")
def make_today(date_provider):
    return date_provider.current_gregorian_day()


@pytest.fixture(name="key_value_store")
def make_key_value_store():
    return InMemoryKeyValueStore()


@pytest.fixture(name="recorder")
def make_recorder():
    return MetricsRecorder()
