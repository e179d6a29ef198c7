import collections

from zmetadata.storage import _listdir_from_keys
from zmetadata.util import json_dumps


class MemoryStore(dict):
    """In-memory store counting accesses, with optional failures.

    Keys in `vanishing` are reported as present but cannot be found, keys in
    `unreadable` are found but cannot be read, paths in `unlistable` cannot
    be listed.
    """

    def __init__(self, *args, unlistable=(), vanishing=(), unreadable=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.unlistable = set(unlistable)
        self.vanishing = set(vanishing)
        self.unreadable = set(unreadable)
        self.counter = collections.Counter()

    def __getitem__(self, key):
        self.counter['__getitem__', key] += 1
        if key in self.vanishing:
            raise KeyError(key)
        if key in self.unreadable:
            raise PermissionError(13, 'Permission denied', key)
        return super().__getitem__(key)

    def listdir(self, path=None):
        self.counter['listdir', path] += 1
        if path in self.unlistable:
            raise PermissionError(13, 'Permission denied', path)
        return _listdir_from_keys(self, path)


def populate(store, documents):
    """Write each document of `documents` under its key, JSON encoded.
    Bytes are written unchanged."""
    for key, doc in documents.items():
        if isinstance(doc, bytes):
            store[key] = doc
        else:
            store[key] = json_dumps(doc)
    return store
