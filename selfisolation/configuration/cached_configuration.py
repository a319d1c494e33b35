import logging
from pathlib import Path
from typing import Callable, Optional, Union

import yaml

from selfisolation.configuration.isolation_configuration import (
    Country,
    IsolationConfiguration,
    default_config_filename,
    load_yaml,
    read_country,
)
from selfisolation.exc import ConfigurationFetchError, IsolationStorageError
from selfisolation.storage import atomic_write_yaml

logger = logging.getLogger(__name__)


class CachedIsolationConfiguration:
    """
    Keeps the last known good isolation configuration.

    The value starts as the packaged default for the country, is replaced by
    whatever was cached on disk by a previous run, and is refreshed by
    ``update``. A failed refresh never changes the value, so the engine can
    always be run against ``value`` without waiting on the network.

    Parameters
    ----------
    fetcher:
        callable returning the remote payload (a dictionary keyed by country).
    country:
        country whose values are used.
    cache_filename:
        where the last fetched configuration is written, if anywhere.
    max_attempts:
        how many times ``update`` calls the fetcher before giving up.
    """

    def __init__(
        self,
        fetcher: Optional[Callable[[], dict]] = None,
        country: Union[str, Country] = Country.england,
        cache_filename: Optional[Union[str, Path]] = None,
        default_filename: Path = default_config_filename,
        max_attempts: int = 3,
    ):
        self.fetcher = fetcher
        self.country = read_country(country)
        self.cache_filename = Path(cache_filename) if cache_filename else None
        self.max_attempts = max_attempts
        self.default = IsolationConfiguration.from_file(
            default_filename, country=self.country
        )
        self._value = self._read_cache() or self.default

    @property
    def value(self) -> IsolationConfiguration:
        return self._value

    def _read_cache(self) -> Optional[IsolationConfiguration]:
        if self.cache_filename is None or not self.cache_filename.exists():
            return None
        try:
            cached = load_yaml(self.cache_filename)
            return IsolationConfiguration.from_dict(cached.get(self.country.value, {}))
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                f"Ignoring unreadable isolation configuration cache "
                f"{self.cache_filename}: {e}"
            )
            return None

    def _write_cache(self, configuration: IsolationConfiguration):
        if self.cache_filename is None:
            return
        atomic_write_yaml(
            self.cache_filename, {self.country.value: configuration.to_dict()}
        )

    def fetch(self) -> IsolationConfiguration:
        """
        Calls the fetcher once and parses its payload.

        Raises
        ------
        ConfigurationFetchError
            If there is no fetcher, the fetcher fails or the payload is invalid.
        """
        if self.fetcher is None:
            raise ConfigurationFetchError("No isolation configuration fetcher set")
        try:
            payload = self.fetcher()
        except Exception as e:
            raise ConfigurationFetchError(
                f"Fetching the isolation configuration failed: {e}"
            ) from e
        try:
            return IsolationConfiguration.from_remote_payload(payload, self.country)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigurationFetchError(
                f"Invalid isolation configuration payload: {e}"
            ) from e

    def update(self) -> bool:
        """
        Refreshes the configuration, retrying up to ``max_attempts`` times.
        Returns True if the value was refreshed; otherwise the last known good
        value is kept.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                configuration = self.fetch()
            except ConfigurationFetchError as e:
                logger.warning(
                    f"Isolation configuration update attempt {attempt}/"
                    f"{self.max_attempts} failed: {e}"
                )
                continue
            try:
                self._write_cache(configuration)
            except IsolationStorageError as e:
                logger.warning(f"Could not cache isolation configuration: {e}")
            if configuration != self._value:
                logger.info(f"Isolation configuration updated for {self.country.value}")
            self._value = configuration
            return True
        logger.warning("Keeping last known good isolation configuration")
        return False
