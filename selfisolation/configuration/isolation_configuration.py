"""
This module handles the isolation policy values the engine runs against.

Classes:
    - Country: The countries the policy values are indexed by.
    - IsolationConfiguration: Immutable set of isolation period lengths.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import yaml

from selfisolation import paths

default_config_filename = (
    paths.configs_path / "defaults/isolation/isolation_configuration.yaml"
)

CONFIGURATION_VERSION = 1


class Country(Enum):
    england = "england"
    wales = "wales"


# keys of the remote payload, per field
_remote_keys = {
    "max_isolation": "maxIsolation",
    "contact_case": "contactCase",
    "index_case_since_self_diagnosis_onset": "indexCaseSinceSelfDiagnosisOnset",
    "index_case_since_self_diagnosis_unknown_onset": "indexCaseSinceSelfDiagnosisUnknownOnset",
    "housekeeping_deletion_period": "housekeepingDeletionPeriod",
    "index_case_since_npex_day_no_self_diagnosis": "indexCaseSinceNPEXDayNoSelfDiagnosis",
    "confirmatory_day_limit": "confirmatoryDayLimit",
}

# payload sections, per country
_remote_country_keys = {
    Country.england: ("england",),
    Country.wales: ("wales_v2", "wales"),
}


def load_yaml(file_path: Path) -> dict:
    """
    Utility function to load a YAML file.

    Parameters
    ----------
    file_path : Path
        The path to the YAML file.

    Returns
    -------
    dict
        The contents of the YAML file as a dictionary.
    """
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def read_country(country: Union[str, Country]) -> Country:
    if isinstance(country, Country):
        return country
    try:
        return Country(country.lower())
    except (AttributeError, ValueError):
        raise ValueError(f"Unknown country '{country}'")


@dataclass(frozen=True)
class IsolationConfiguration:
    """
    Isolation period lengths, in days.

    Attributes:
        max_isolation: upper bound on any isolation, counted from its first day.
        contact_case: isolation length after a risky contact, counted from
            the exposure day.
        index_case_since_self_diagnosis_onset: isolation length after the
            symptom onset day, when the user remembers it.
        index_case_since_self_diagnosis_unknown_onset: isolation length after
            the self-diagnosis day, when the onset day is unknown.
        housekeeping_deletion_period: days a finished isolation is kept
            around before it is deleted.
        index_case_since_npex_day_no_self_diagnosis: isolation length after
            the end day of a positive test when there were no symptoms.
        confirmatory_day_limit: days after an unconfirmed positive test's
            end day within which a confirmatory test counts. Tests can carry
            their own limit, which takes precedence. ``None`` means no limit.
    """

    max_isolation: int = 21
    contact_case: int = 11
    index_case_since_self_diagnosis_onset: int = 11
    index_case_since_self_diagnosis_unknown_onset: int = 9
    housekeeping_deletion_period: int = 14
    index_case_since_npex_day_no_self_diagnosis: int = 11
    confirmatory_day_limit: Optional[int] = None

    def __post_init__(self):
        for field in fields(self):
            value = getattr(self, field.name)
            if value is None and field.name == "confirmatory_day_limit":
                continue
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"'{field.name}' must be an integer, got {value!r}")
            if field.name == "confirmatory_day_limit":
                if value < 0:
                    raise ValueError(f"'{field.name}' can't be negative")
            elif value <= 0:
                raise ValueError(f"'{field.name}' must be a positive number of days")

    @classmethod
    def field_names(cls) -> List[str]:
        return [field.name for field in fields(cls)]

    @classmethod
    def from_dict(cls, config: dict) -> "IsolationConfiguration":
        """
        Builds a configuration from a dictionary with one key per field.

        Raises
        ------
        KeyError
            If a required field is missing.
        """
        extra_params = [key for key in config if key not in cls.field_names()]
        if extra_params:
            raise KeyError(f"Unknown isolation configuration keys: {extra_params}")
        missing = [
            name
            for name in cls.field_names()
            if name not in config and name != "confirmatory_day_limit"
        ]
        if missing:
            raise KeyError(f"Isolation configuration is missing keys: {missing}")
        return cls(**config)

    @classmethod
    def from_file(
        cls,
        config_filename: Path = default_config_filename,
        country: Union[str, Country, None] = None,
    ) -> "IsolationConfiguration":
        config = load_yaml(config_filename)
        version = config.get("version", CONFIGURATION_VERSION)
        if version != CONFIGURATION_VERSION:
            raise ValueError(
                f"Unsupported isolation configuration version {version} "
                f"in {config_filename}"
            )
        if country is None:
            country = config.get("default_country", Country.england.value)
        country = read_country(country)
        countries = config.get("countries", {})
        if country.value not in countries:
            raise KeyError(f"No isolation configuration for {country.value}")
        return cls.from_dict(countries[country.value])

    @classmethod
    def from_remote_payload(
        cls, payload: dict, country: Union[str, Country] = Country.england
    ) -> "IsolationConfiguration":
        """
        Parses the configuration as served by the remote distribution
        endpoint, which is keyed by country and uses camelCase names.
        """
        country = read_country(country)
        section = None
        for key in _remote_country_keys[country]:
            if key in payload:
                section = payload[key]
                break
        if section is None:
            raise KeyError(f"Remote configuration has no section for {country.value}")
        config = {}
        for name, remote_key in _remote_keys.items():
            if remote_key in section:
                config[name] = section[remote_key]
        return cls.from_dict(config)

    def to_dict(self) -> dict:
        return asdict(self)
