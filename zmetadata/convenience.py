"""Convenience functions for consolidating and reading metadata."""
import io
from typing import Any, Dict

from zmetadata import defaults
from zmetadata.errors import (
    NotAZarrGroupError,
    UnsupportedFormatError,
    WriteFailureError,
)
from zmetadata.hierarchy import HierarchyWalker, NodeKind, read_group, read_node
from zmetadata.mappings import AggregateMap
from zmetadata.storage import (
    ConsolidatedMetadataStore,
    _path_to_prefix,
    attrs_key,
    contains_group,
    group_meta_key,
    normalize_store_arg,
)
from zmetadata.sync import hierarchy_lock
from zmetadata.util import TreeViewer, json_dumps, normalize_storage_path


class _LogWriter:

    def __init__(self, log):
        self.log_func = None
        self.log_file = None
        self.needs_closing = False
        if log is None:
            # don't do any logging
            pass
        elif callable(log):
            self.log_func = log
        elif isinstance(log, str):
            self.log_file = io.open(log, mode='w')
            self.needs_closing = True
        else:
            if not hasattr(log, 'write'):
                raise TypeError('log must be a callable function, file path or '
                                'file-like object, found %r' % log)
            self.log_file = log
            self.needs_closing = False

    def __enter__(self):
        return self

    def __exit__(self, *args):
        if self.log_file is not None and self.needs_closing:
            self.log_file.close()

    def __call__(self, *args, **kwargs):
        if self.log_file is not None:
            kwargs['file'] = self.log_file
            print(*args, **kwargs)
            if hasattr(self.log_file, 'flush'):
                # get immediate feedback
                self.log_file.flush()
        elif self.log_func is not None:
            self.log_func(*args, **kwargs)


def _describe(store, path):
    location = getattr(store, 'path', None)
    if location is None:
        location = type(store).__name__
    if path:
        location = '{}/{}'.format(location, path)
    return location


def root_info(store, path=None) -> Dict[str, Any]:
    """Report what kind of node is found at `path` and its format version.

    Parameters
    ----------
    store : MutableMapping or string
        Store or path to directory in file system.
    path : str, optional
        Path of the node within the store.

    Returns
    -------
    info : dict
        With items ``'node_type'`` (``'group'`` or ``'array'``),
        ``'zarr_format'`` (None when the core document has no such field)
        and ``'attributes'``.

    """
    store = normalize_store_arg(store)
    path = normalize_storage_path(path)
    # the group documents win over an array stored at the same path
    node = read_group(store, path)
    if node.kind is NodeKind.NEITHER:
        node = read_node(store, path)
    if node.kind is NodeKind.NEITHER:
        raise NotAZarrGroupError(path)
    core = node.core if isinstance(node.core, dict) else {}
    return {
        'node_type': node.kind.value.lower(),
        'zarr_format': core.get('zarr_format'),
        'attributes': node.attrs or {},
    }


def _check_zarr_v2(store, path):
    if not contains_group(store, path):
        raise NotAZarrGroupError(path)
    zarr_format = root_info(store, path)['zarr_format']
    if zarr_format != 2:
        raise UnsupportedFormatError(zarr_format)


def write_consolidated(store, aggregate: AggregateMap, metadata_key=None, *,
                       path=None, synchronizer=None) -> Dict[str, Any]:
    """Write the documents held by `aggregate` as consolidated metadata.

    The documents of the group at `path` are read again and always come
    first. The remaining documents follow in the order they were added to
    `aggregate`, under their hierarchical keys.

    Parameters
    ----------
    store : MutableMapping or string
        Store or path to directory in file system.
    aggregate : AggregateMap
        Documents found below the group at `path`.
    metadata_key : str, optional
        Key to put the consolidated metadata under, relative to `path`.
    path : str, optional
        Path of the group within the store.
    synchronizer : object, optional
        Synchronizer; the write holds its lock for the hierarchy at `path`.

    Returns
    -------
    out : dict
        The consolidated document written.

    """
    store = normalize_store_arg(store)
    path = normalize_storage_path(path)
    key = _path_to_prefix(path) + (metadata_key or defaults.metadata_key)

    metadata: Dict[str, Any] = dict()
    root = read_group(store, path)
    if root.kind is NodeKind.GROUP:
        metadata[group_meta_key] = root.core
        if root.attrs is not None:
            metadata[attrs_key] = root.attrs
    metadata.update(aggregate.to_dict())

    out = {
        'zarr_consolidated_format': defaults.consolidated_format,
        'metadata': metadata,
    }

    try:
        value = json_dumps(out)
    except UnicodeEncodeError as e:
        # names read from the file system that are not valid UTF-8
        raise WriteFailureError(key) from e

    with hierarchy_lock(synchronizer, store, path):
        try:
            store[key] = value
        except (OSError, KeyError) as e:
            raise WriteFailureError(key) from e
    return out


def consolidate_metadata(store, metadata_key=None, *, path=None, key_codec=None,
                         if_unlistable=None, max_depth=None, synchronizer=None,
                         log=None) -> ConsolidatedMetadataStore:
    """
    Consolidate all metadata for groups and arrays within the given store
    into a single resource and put it under the given key.

    The hierarchy is walked depth-first from the group at `path`. Every
    ``.zarray`` and ``.zgroup`` document found is collected along with any
    non-empty ``.zattrs`` document, under its path relative to that group,
    e.g. ``'g1/a1/.zarray'``. Arrays are leaves, and directories which are
    neither an array nor a group are not visited.

    Note, that if the metadata in the store is changed after this
    consolidation, then the consolidated metadata will be out of date
    unless this function is called again.

    Parameters
    ----------
    store : MutableMapping or string
        Store or path to directory in file system.
    metadata_key : str, optional
        Key to put the consolidated metadata under. Defaults to
        ``'.zmetadata'``.
    path : str, optional
        Path of the group to consolidate within the store.
    key_codec : object, optional
        Codec for internal keys, see :mod:`zmetadata.keys`.
    if_unlistable : {'skip', 'raise'}, optional
        What to do when a directory cannot be listed. By default such a
        directory is treated as empty and reported in the log.
    max_depth : int, optional
        Maximum nesting depth of groups.
    synchronizer : object, optional
        Synchronizer, see :mod:`zmetadata.sync`. Its lock for the hierarchy
        is held from the format check until the consolidated metadata are
        written.
    log : callable, file path or file-like object, optional
        If provided, will be used to log progress information.

    Returns
    -------
    store : :class:`zmetadata.storage.ConsolidatedMetadataStore`
        Read-only view of the new consolidated metadata.

    Raises
    ------
    NotAZarrGroupError
        If there is no group at `path`.
    UnsupportedFormatError
        If the group is not in zarr v2 format.
    MissingCoreDocumentError, MalformedDocumentError
        If a metadata document cannot be read or decoded.
    WriteFailureError
        If the consolidated metadata cannot be written.

    Examples
    --------
    >>> import zmetadata
    >>> store = zmetadata.DirectoryStore('data/example.zarr')
    >>> store['.zgroup'] = b'{"zarr_format": 2}'
    >>> store['foo/.zarray'] = b'{"shape": [10], "zarr_format": 2}'
    >>> meta = zmetadata.consolidate_metadata(store)
    >>> list(meta)
    ['.zgroup', 'foo/.zarray']

    See Also
    --------
    open_consolidated

    """
    store = normalize_store_arg(store)
    path = normalize_storage_path(path)
    metadata_key = metadata_key or defaults.metadata_key

    with _LogWriter(log) as log, hierarchy_lock(synchronizer, store, path):

        # nothing is read below the root until the format is known
        _check_zarr_v2(store, path)
        log('consolidating metadata of {!r}'.format(_describe(store, path)))

        walker = HierarchyWalker(store, path=path, key_codec=key_codec,
                                 if_unlistable=if_unlistable, max_depth=max_depth,
                                 log=log)
        aggregate = walker.walk()

        out = write_consolidated(store, aggregate, metadata_key, path=path)
        log('all done: {:,} documents written to {!r}'
            .format(len(out['metadata']), metadata_key))

    return open_consolidated(store, metadata_key=metadata_key, path=path)


def open_consolidated(store, metadata_key=None, *, path=None) -> ConsolidatedMetadataStore:
    """Open metadata previously consolidated into a single key.

    Parameters
    ----------
    store : MutableMapping or string
        Store or path to directory in file system.
    metadata_key : str, optional
        Key to read the consolidated metadata from. The default (.zmetadata)
        corresponds to the default used by :func:`consolidate_metadata`.
    path : str, optional
        Path of the consolidated group within the store.

    Returns
    -------
    store : :class:`zmetadata.storage.ConsolidatedMetadataStore`
        Read-only mapping of hierarchical keys to metadata documents.

    See Also
    --------
    consolidate_metadata

    """
    store = normalize_store_arg(store)
    path = normalize_storage_path(path)
    key = _path_to_prefix(path) + (metadata_key or defaults.metadata_key)
    return ConsolidatedMetadataStore(store, metadata_key=key)


def tree(store, metadata_key=None, *, path=None, level=None):
    """Provide a ``print``-able display of the hierarchy described by
    consolidated metadata.

    Parameters
    ----------
    store : MutableMapping or string
        Store or path to directory in file system.
    metadata_key : str, optional
        Key to read the consolidated metadata from.
    path : str, optional
        Path of the consolidated group within the store.
    level : int, optional
        Maximum depth to descend into hierarchy.

    Examples
    --------
    >>> import zmetadata
    >>> print(zmetadata.tree('data/example.zarr'))
    /
     └── foo (10,) None

    """
    meta = open_consolidated(store, metadata_key=metadata_key, path=path)
    return TreeViewer(meta, level=level)
