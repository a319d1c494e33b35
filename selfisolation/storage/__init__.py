from .key_value_store import (
    KeyValueStore,
    InMemoryKeyValueStore,
    FileKeyValueStore,
    atomic_write_yaml,
)
