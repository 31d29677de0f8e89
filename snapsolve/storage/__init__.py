from snapsolve.storage.base import KeyValueStore, StorageKeys
from snapsolve.storage.conf import load_chat_conf, save_chat_conf
from snapsolve.storage.memory import InMemoryKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "StorageKeys",
    "load_chat_conf",
    "save_chat_conf",
]
