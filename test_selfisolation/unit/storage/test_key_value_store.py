import os

import pytest

from selfisolation.exc import IsolationStorageError
from selfisolation.storage import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    atomic_write_yaml,
)


@pytest.fixture(name="file_store")
def make_file_store(tmp_path):
    return FileKeyValueStore(tmp_path / "store")


class TestInMemoryKeyValueStore:
    def test__get_set_delete(self):
        store = InMemoryKeyValueStore()
        assert store.get("key") is None
        store.set("key", {"a": [1, 2]})
        assert store.get("key") == {"a": [1, 2]}
        store.delete("key")
        assert store.get("key") is None
        store.delete("key")

    def test__values_are_copied(self):
        value = {"a": [1]}
        store = InMemoryKeyValueStore()
        store.set("key", value)
        value["a"].append(2)
        store.get("key")["a"].append(3)
        assert store.get("key") == {"a": [1]}


class TestFileKeyValueStore:
    def test__get_set_delete(self, file_store):
        assert file_store.get("isolation_state_info") is None
        file_store.set("isolation_state_info", {"version": 1, "day": "2021-03-01"})
        assert file_store.get("isolation_state_info") == {
            "version": 1,
            "day": "2021-03-01",
        }
        file_store.delete("isolation_state_info")
        assert file_store.get("isolation_state_info") is None

    def test__no_temporary_files_left(self, file_store):
        file_store.set("key", {"a": 1})
        file_store.set("key", {"a": 2})
        assert os.listdir(file_store.directory) == ["key.yaml"]

    def test__corrupted_file(self, file_store):
        file_store.directory.mkdir(parents=True)
        (file_store.directory / "key.yaml").write_text("a: [1, 2\n")
        with pytest.raises(IsolationStorageError):
            file_store.get("key")


def test__failed_write_keeps_previous_file(tmp_path):
    filename = tmp_path / "value.yaml"
    atomic_write_yaml(filename, {"a": 1})
    with pytest.raises(IsolationStorageError):
        atomic_write_yaml(filename, {"a": object()})
    assert filename.read_text() == "a: 1\n"
    assert os.listdir(tmp_path) == ["value.yaml"]
