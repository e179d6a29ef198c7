"""Locks serializing consolidations of the same hierarchy.

A synchronizer hands out one lock per hierarchy root. While a consolidation
holds it, no other consolidation of that hierarchy sharing the synchronizer
can start walking it or replace its consolidated metadata.

"""
import hashlib
import os
from collections import defaultdict
from threading import Lock

from zmetadata.util import nolock


def hierarchy_id(store, path: str = '') -> str:
    """Identify the hierarchy rooted at `path` (already normalized) in
    `store`.

    A directory store is identified by its directory, so that stores opened
    separately on the same directory share one lock. Any other store is
    identified by the store object itself.
    """
    location = getattr(store, 'path', None)
    if location is None:
        location = '{}@{:x}'.format(type(store).__name__, id(store))
    if path:
        location = '{}/{}'.format(location, path)
    return location


class _Synchronizer(object):

    def __getitem__(self, item):
        raise NotImplementedError

    def lock(self, store, path=''):
        """Return the lock of the hierarchy rooted at `path` in `store`."""
        return self[hierarchy_id(store, path)]


class ThreadSynchronizer(_Synchronizer):
    """Serializes consolidations run from several threads of one process,
    using one :class:`threading.Lock` per hierarchy."""

    def __init__(self):
        self.mutex = Lock()
        self.locks = defaultdict(Lock)

    def __getitem__(self, item):
        with self.mutex:
            return self.locks[item]

    def __getstate__(self):
        return True

    def __setstate__(self, *args):
        # locks cannot be shared between processes
        self.__init__()


class ProcessSynchronizer(_Synchronizer):
    """Serializes consolidations run from several processes, using file locks
    via the `fasteners <https://fasteners.readthedocs.io/en/latest/api/inter_process/>`_
    package.

    Parameters
    ----------
    path : string
        Path to a directory on a file system that is shared by all processes.
        Each hierarchy gets one lock file in it, named after a digest of the
        hierarchy's location, so lock files never land inside a hierarchy.

    """

    def __init__(self, path):
        self.path = path

    def lock_path(self, item):
        digest = hashlib.sha1(item.encode('utf-8', 'surrogateescape')).hexdigest()
        return os.path.join(self.path, digest + '.lock')

    def __getitem__(self, item):
        import fasteners

        return fasteners.InterProcessLock(self.lock_path(item))


def hierarchy_lock(synchronizer, store, path=''):
    """Return the lock `synchronizer` holds for the hierarchy at `path`, or a
    lock that doesn't lock when there is no synchronizer."""
    if synchronizer is None:
        return nolock
    return synchronizer.lock(store, path)
