import os
import pickle
from multiprocessing.pool import ThreadPool

from zmetadata.convenience import consolidate_metadata, write_consolidated
from zmetadata.mappings import AggregateMap
from zmetadata.storage import DirectoryStore, _listdir_from_keys
from zmetadata.sync import (
    ProcessSynchronizer,
    ThreadSynchronizer,
    hierarchy_id,
    hierarchy_lock,
)
from zmetadata.tests.util import MemoryStore, populate
from zmetadata.util import nolock

group_meta = {'zarr_format': 2}


def _hierarchy(store):
    return populate(store, {
        '.zgroup': group_meta,
        'g1/.zgroup': group_meta,
        'g1/arr/.zarray': {'shape': [4], 'zarr_format': 2},
        'g2/.zgroup': group_meta,
    })


def test_hierarchy_id(tmpdir):
    path = str(tmpdir.join('data.zarr'))
    assert hierarchy_id(DirectoryStore(path)) == hierarchy_id(DirectoryStore(path))
    assert hierarchy_id(DirectoryStore(path)) == path
    assert hierarchy_id(DirectoryStore(path), 'g1') == path + '/g1'

    a, b = MemoryStore(), MemoryStore()
    assert hierarchy_id(a) == hierarchy_id(a)
    assert hierarchy_id(a) != hierarchy_id(b)


def test_hierarchy_lock(store):
    assert hierarchy_lock(None, store) is nolock

    sync = ThreadSynchronizer()
    assert hierarchy_lock(sync, store) is sync.lock(store)
    assert hierarchy_lock(sync, DirectoryStore(store.path)) is sync.lock(store)
    assert sync.lock(store) is not sync.lock(store, 'g1')


def test_thread_synchronizer_pickle():
    sync = ThreadSynchronizer()
    assert sync['x'] is sync['x']
    restored = pickle.loads(pickle.dumps(sync))
    assert 0 == len(restored.locks)


def test_lock_held_while_walking():
    store = _hierarchy(MemoryStore())
    sync = ThreadSynchronizer()
    lock = sync.lock(store)
    held = []

    def listdir(path=None):
        held.append(lock.locked())
        return _listdir_from_keys(store, path)

    store.listdir = listdir
    out = consolidate_metadata(store, synchronizer=sync)
    assert 4 == len(out)
    assert held and all(held)
    assert not lock.locked()


def test_write_consolidated_lock(store, monkeypatch):
    _hierarchy(store)
    sync = ThreadSynchronizer()
    lock = sync.lock(store)
    held = []
    tofile = store._tofile

    def _tofile(a, fn):
        held.append(lock.locked())
        tofile(a, fn)

    monkeypatch.setattr(store, '_tofile', _tofile)
    write_consolidated(store, AggregateMap(), synchronizer=sync)
    assert [True] == held
    assert not lock.locked()


def test_parallel_consolidation(store):
    _hierarchy(store)
    sync = ThreadSynchronizer()
    pool = ThreadPool(4)
    try:
        results = pool.map(lambda _: list(consolidate_metadata(store, synchronizer=sync)),
                           range(8))
    finally:
        pool.terminate()
    expect = ['.zgroup', 'g1/.zgroup', 'g1/arr/.zarray', 'g2/.zgroup']
    assert all(expect == r for r in results)
    assert not [n for n in os.listdir(store.path) if n.endswith('.partial')]


def test_process_synchronizer(store, tmpdir):
    _hierarchy(store)
    lock_dir = str(tmpdir.join('locks'))
    sync = ProcessSynchronizer(lock_dir)

    # lock files are named after the hierarchy, never placed inside it
    lock_path = sync.lock_path(hierarchy_id(store))
    assert lock_dir == os.path.dirname(lock_path)
    assert lock_path.endswith('.lock')
    assert sync.lock_path(hierarchy_id(store)) != sync.lock_path(hierarchy_id(store, 'g1'))

    out = consolidate_metadata(store, synchronizer=sync)
    assert 4 == len(out)
    assert ['.zgroup', '.zmetadata', 'g1', 'g2'] == sorted(os.listdir(store.path))
    assert all(n.endswith('.lock') for n in os.listdir(lock_dir))
