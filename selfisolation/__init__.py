import logging.config
import os

import yaml

from selfisolation import paths
from .exc import SelfIsolationError
from .time import DateProvider, GregorianDay, LocalDay, SimulatedDateProvider
from .configuration import CachedIsolationConfiguration, IsolationConfiguration
from .storage import FileKeyValueStore, InMemoryKeyValueStore
from .records import MetricEvent, MetricsRecorder
from .isolation import IsolationContext

default_logging_config_filename = paths.configs_path / "logging.yaml"

if os.path.isfile(default_logging_config_filename):
    with open(default_logging_config_filename, "rt") as f:
        log_config = yaml.safe_load(f.read())
        logging.config.dictConfig(log_config)
else:
    print("The logging config file does not exist.")
    logging.basicConfig(level=logging.INFO)
