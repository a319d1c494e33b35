import copy
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from selfisolation.exc import IsolationStorageError

logger = logging.getLogger(__name__)


def atomic_write_yaml(filename: Union[str, Path], data: dict):
    """
    Writes ``data`` as YAML so that readers either see the previous file or
    the complete new one. The document is written to a temporary file in the
    same directory and moved over the target.

    Raises
    ------
    IsolationStorageError
        If the document could not be written. The previous file is intact.
    """
    filename = Path(filename)
    temp_name = None
    try:
        filename.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=filename.parent,
            prefix=f".{filename.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_name = f.name
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_name, filename)
        temp_name = None
    except (OSError, yaml.YAMLError) as e:
        raise IsolationStorageError(f"Could not write {filename}: {e}") from e
    finally:
        if temp_name is not None and os.path.exists(temp_name):
            os.remove(temp_name)


class KeyValueStore(ABC):
    """
    Template for the storage the isolation state is persisted in. Values are
    plain dictionaries made of YAML-safe types.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[dict]:
        pass

    @abstractmethod
    def set(self, key: str, value: dict):
        pass

    @abstractmethod
    def delete(self, key: str):
        pass


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, values: Optional[Dict[str, dict]] = None):
        self.values = copy.deepcopy(values) if values else {}

    def get(self, key: str) -> Optional[dict]:
        value = self.values.get(key)
        return copy.deepcopy(value)

    def set(self, key: str, value: dict):
        self.values[key] = copy.deepcopy(value)

    def delete(self, key: str):
        self.values.pop(key, None)


class FileKeyValueStore(KeyValueStore):
    """
    Stores each key as a YAML document ``<key>.yaml`` inside ``directory``.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _filename(self, key: str) -> Path:
        return self.directory / f"{key}.yaml"

    def get(self, key: str) -> Optional[dict]:
        filename = self._filename(key)
        if not filename.exists():
            return None
        try:
            with open(filename, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise IsolationStorageError(f"Could not read {filename}: {e}") from e

    def set(self, key: str, value: dict):
        atomic_write_yaml(self._filename(key), value)
        logger.debug(f"Stored {key} in {self.directory}")

    def delete(self, key: str):
        filename = self._filename(key)
        try:
            filename.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise IsolationStorageError(f"Could not delete {filename}: {e}") from e
