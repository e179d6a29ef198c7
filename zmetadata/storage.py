"""This module contains the storage classes read and written by the
consolidation functions.

Any object implementing the :class:`MutableMapping` interface from the
:mod:`collections` module in the Python standard library can be used as a
store, as long as it accepts string (str) keys and bytes values. Stores may
also implement an optional `listdir` method (list members of a "directory");
if it is not available, a slower implementation working via the
:class:`MutableMapping` interface is used.

"""
import errno
import os
import shutil
import uuid
import warnings
from collections.abc import MutableMapping
from typing import Any, Dict, List, Optional, Union

from numcodecs.compat import ensure_bytes

from zmetadata import defaults
from zmetadata.errors import (
    FSPathExistNotDir,
    MetadataError,
    ReadOnlyError,
)
from zmetadata.util import json_loads, normalize_storage_path, retry_call

# v2 store keys
array_meta_key = '.zarray'
group_meta_key = '.zgroup'
attrs_key = '.zattrs'

Path = Union[str, bytes, None]
StoreLike = MutableMapping


def _path_to_prefix(path: Optional[str]) -> str:
    # assume path already normalized
    if path:
        prefix = path + '/'
    else:
        prefix = ''
    return prefix


def _listdir_from_keys(store: StoreLike, path: Optional[str] = None) -> List[str]:
    # assume path already normalized
    prefix = _path_to_prefix(path)
    children = set()
    for key in list(store.keys()):
        if key.startswith(prefix) and len(key) > len(prefix):
            suffix = key[len(prefix):]
            child = suffix.split('/')[0]
            children.add(child)
    return sorted(children)


def contains_array(store: StoreLike, path: Path = None) -> bool:
    """Return True if the store contains an array at the given logical path."""
    path = normalize_storage_path(path)
    key = _path_to_prefix(path) + array_meta_key
    return key in store


def contains_group(store: StoreLike, path: Path = None) -> bool:
    """Return True if the store contains a group at the given logical path."""
    path = normalize_storage_path(path)
    key = _path_to_prefix(path) + group_meta_key
    return key in store


def listdir(store: StoreLike, path: Path = None) -> List[str]:
    """Obtain a directory listing for the given path. If `store` provides a `listdir`
    method, this will be called, otherwise will fall back to implementation via the
    `MutableMapping` interface."""
    return _listdir(store, normalize_storage_path(path))


def _listdir(store: StoreLike, path: str) -> List[str]:
    # assume path already normalized
    if hasattr(store, "listdir"):
        # pass through
        return store.listdir(path)
    else:
        # slow version, iterate through all keys
        warnings.warn(
            f"Store {store} has no `listdir` method; listing is done by "
            "iterating over all keys.",
            stacklevel=2,
        )
        return _listdir_from_keys(store, path)


def normalize_store_arg(store: Any) -> StoreLike:
    """Return a store for `store`, opening a :class:`DirectoryStore` when
    given a file system path."""
    if isinstance(store, os.PathLike):
        store = os.fspath(store)
    if isinstance(store, str):
        return DirectoryStore(store)
    return store


class DirectoryStore(MutableMapping):
    """Storage class using directories and files on a standard file system.

    Parameters
    ----------
    path : string
        Location of directory to use as the root of the storage hierarchy.

    Examples
    --------
    Consolidate a hierarchy written to disk::

        >>> import zmetadata
        >>> store = zmetadata.DirectoryStore('data/group.zarr')
        >>> store['.zgroup'] = b'{"zarr_format": 2}'
        >>> store['foo/.zarray'] = b'{"shape": [10], "zarr_format": 2}'
        >>> sorted(store.listdir())
        ['.zgroup', 'foo']

    Notes
    -----
    Atomic writes are used, which means that data are first written to a
    temporary file, then moved into place when the write is successfully
    completed. Files are only held open while they are being read or written
    and are closed immediately afterwards.

    Listings are sorted, so a hierarchy is always visited in the same order
    whatever order the file system reports entries in.

    """

    def __init__(self, path):
        # guard conditions
        path = os.path.abspath(path)
        if os.path.exists(path) and not os.path.isdir(path):
            raise FSPathExistNotDir(path)

        self.path = path

    @staticmethod
    def _fromfile(fn):
        with open(fn, 'rb') as f:
            return f.read()

    @staticmethod
    def _tofile(a, fn):
        with open(fn, mode='wb') as f:
            f.write(a)

    def __getitem__(self, key):
        filepath = os.path.join(self.path, key)
        if os.path.isfile(filepath):
            try:
                return self._fromfile(filepath)
            except FileNotFoundError:
                # removed since the check above
                raise KeyError(key)
        else:
            raise KeyError(key)

    def __setitem__(self, key, value):
        value = ensure_bytes(value)

        # destination path for key
        file_path = os.path.join(self.path, key)

        # ensure there is no directory in the way
        if os.path.isdir(file_path):
            shutil.rmtree(file_path)

        # ensure containing directory exists
        dir_path, file_name = os.path.split(file_path)
        if os.path.isfile(dir_path):
            raise KeyError(key)
        if not os.path.exists(dir_path):
            try:
                os.makedirs(dir_path)
            except OSError as e:
                if e.errno != errno.EEXIST:
                    raise KeyError(key) from e

        # write to temporary file
        # note we're not using tempfile.NamedTemporaryFile to avoid restrictive file permissions
        temp_name = file_name + '.' + uuid.uuid4().hex + '.partial'
        temp_path = os.path.join(dir_path, temp_name)
        try:
            self._tofile(value, temp_path)

            # move temporary file into place;
            # make several attempts to get past antivirus file locking issues
            retry_call(os.replace, (temp_path, file_path), exceptions=(PermissionError,))

        finally:
            # clean up if temp file still exists for whatever reason
            if os.path.exists(temp_path):
                os.remove(temp_path)

    def __delitem__(self, key):
        path = os.path.join(self.path, key)
        if os.path.isfile(path):
            os.remove(path)
        elif os.path.isdir(path):
            shutil.rmtree(path)
        else:
            raise KeyError(key)

    def __contains__(self, key):
        file_path = os.path.join(self.path, key)
        return os.path.isfile(file_path)

    def __eq__(self, other):
        return isinstance(other, DirectoryStore) and self.path == other.path

    def keys(self):
        if os.path.exists(self.path):
            yield from self._keys_fast(self.path)

    @staticmethod
    def _keys_fast(path, walker=os.walk):
        for dirpath, _, filenames in walker(path):
            dirpath = os.path.relpath(dirpath, path)
            if dirpath == os.curdir:
                for f in filenames:
                    yield f
            else:
                dirpath = dirpath.replace(os.sep, '/')
                for f in filenames:
                    yield '/'.join((dirpath, f))

    def __iter__(self):
        return self.keys()

    def __len__(self):
        return sum(1 for _ in self.keys())

    def listdir(self, path=None):
        """Return the sorted names held by the directory at `path`.

        `path` is taken as already normalized: it is joined to the root
        unchanged, so names holding a backslash are listed as they are on
        POSIX file systems. A directory that does not exist has no children;
        a directory that exists but cannot be read raises :class:`OSError`.
        """
        dir_path = os.path.join(self.path, path) if path else self.path
        if os.path.isdir(dir_path):
            return sorted(os.listdir(dir_path))
        else:
            return []


class ConsolidatedMetadataStore(MutableMapping):
    """A read-only view of the metadata consolidated into a single key of
    another store.

    The consolidated document is read once and held in a dict, so that
    looking up the metadata of any node no longer requires operations on the
    backend store. Values are the decoded metadata documents.

    Parameters
    ----------
    store: MutableMapping
        Store holding the consolidated metadata.
    metadata_key: str
        The key in the store where all of the metadata are stored. We
        assume JSON encoding.

    See Also
    --------
    zmetadata.convenience.consolidate_metadata, zmetadata.convenience.open_consolidated

    """

    def __init__(self, store: StoreLike, metadata_key=None):
        self.store = store
        self.metadata_key = metadata_key or defaults.metadata_key

        # retrieve consolidated metadata
        meta = json_loads(self.store[self.metadata_key])

        # check format of consolidated metadata
        consolidated_format = meta.get('zarr_consolidated_format', None)
        if consolidated_format != defaults.consolidated_format:
            raise MetadataError(
                f"unsupported zarr consolidated metadata format: {consolidated_format}"
            )

        self.meta_store: Dict[str, Any] = dict(meta['metadata'])

    def __getitem__(self, key):
        return self.meta_store[key]

    def __contains__(self, item):
        return item in self.meta_store

    def __iter__(self):
        return iter(self.meta_store)

    def __len__(self):
        return len(self.meta_store)

    def __delitem__(self, key):
        raise ReadOnlyError()

    def __setitem__(self, key, value):
        raise ReadOnlyError()

    def listdir(self, path=None):
        # path as it appears in the consolidated keys
        return _listdir_from_keys(self.meta_store, path)
