"""Discovery of the arrays and groups in a hierarchy, and of the metadata
documents each of them carries."""
from enum import Enum
from typing import Any, NamedTuple, Optional

from zmetadata import defaults
from zmetadata.errors import (
    HierarchyDepthError,
    MalformedDocumentError,
    MissingCoreDocumentError,
    UnreadableDocumentError,
)
from zmetadata.mappings import AggregateMap
from zmetadata.storage import (
    _listdir,
    _path_to_prefix,
    array_meta_key,
    attrs_key,
    group_meta_key,
)
from zmetadata.util import json_loads, normalize_storage_path


class NodeKind(Enum):
    ARRAY = 'Array'
    GROUP = 'Group'
    NEITHER = 'Neither'


class NodeMetadata(NamedTuple):
    kind: NodeKind
    core: Any = None
    attrs: Any = None


def _load_document(store, key):
    raw = store[key]
    try:
        return json_loads(raw)
    except ValueError as e:
        raise MalformedDocumentError(key, e) from e


def _load_core(store, key):
    try:
        return _load_document(store, key)
    except (KeyError, OSError) as e:
        raise MissingCoreDocumentError(key) from e


def _load_attrs(store, key):
    if key not in store:
        return None
    try:
        attrs = _load_document(store, key)
    except KeyError:
        # removed since the check above
        return None
    except OSError as e:
        raise UnreadableDocumentError(key, e) from e
    if isinstance(attrs, (dict, list)) and not attrs:
        return None
    return attrs


def _read_node(store, prefix):
    # prefix is used as is, names are never normalized again
    if prefix + array_meta_key in store:
        kind, core_key = NodeKind.ARRAY, prefix + array_meta_key
    elif prefix + group_meta_key in store:
        kind, core_key = NodeKind.GROUP, prefix + group_meta_key
    else:
        return NodeMetadata(NodeKind.NEITHER)

    core = _load_core(store, core_key)
    attrs = _load_attrs(store, prefix + attrs_key)
    return NodeMetadata(kind, core, attrs)


def read_node(store, path: Optional[str] = None) -> NodeMetadata:
    """Read the metadata documents of the node at `path`.

    Parameters
    ----------
    store : MutableMapping
        Store holding the hierarchy.
    path : str, optional
        Path of the node within the store.

    Returns
    -------
    node : NodeMetadata
        ``kind`` is :attr:`NodeKind.ARRAY` when a ``.zarray`` document is
        found, else :attr:`NodeKind.GROUP` when a ``.zgroup`` document is
        found, else :attr:`NodeKind.NEITHER` with no documents. ``attrs`` is
        None when the node has no ``.zattrs`` document or an empty one.

    Raises
    ------
    MissingCoreDocumentError
        If the core document disappears or cannot be read once found.
    MalformedDocumentError
        If a document is not valid JSON.
    UnreadableDocumentError
        If the ``.zattrs`` document exists but cannot be read.

    """
    return _read_node(store, _path_to_prefix(normalize_storage_path(path)))


def read_group(store, path: Optional[str] = None) -> NodeMetadata:
    """Read the ``.zgroup`` and ``.zattrs`` documents at `path`, whether or
    not an array is stored there too. ``kind`` is :attr:`NodeKind.NEITHER`
    when there is no ``.zgroup`` document."""
    prefix = _path_to_prefix(normalize_storage_path(path))
    if prefix + group_meta_key not in store:
        return NodeMetadata(NodeKind.NEITHER)
    core = _load_core(store, prefix + group_meta_key)
    attrs = _load_attrs(store, prefix + attrs_key)
    return NodeMetadata(NodeKind.GROUP, core, attrs)


class HierarchyWalker(object):
    """Collect the metadata documents of every node below a group.

    Keys in the returned map are relative to the group the walk starts
    from: the group's own documents are held under ``'.zgroup'`` and
    ``'.zattrs'``, those of its descendants under e.g. ``'g1/a1/.zarray'``.

    Arrays are leaves; nothing below an array is visited. Directories that
    are neither an array nor a group are not visited either.

    Parameters
    ----------
    store : MutableMapping
        Store holding the hierarchy.
    path : str, optional
        Path of the group within the store.
    key_codec : object, optional
        Codec for the internal keys of the aggregate maps.
    if_unlistable : {'skip', 'raise'}, optional
        What to do when a directory cannot be listed: 'skip' treats it as
        having no children, 'raise' propagates the :class:`OSError`.
    max_depth : int, optional
        Maximum nesting depth of groups below `path`.
    log : callable, optional
        Called with a message for each node found and each directory
        skipped.

    """

    def __init__(self, store, path=None, key_codec=None, if_unlistable=None,
                 max_depth=None, log=None):
        self.store = store
        self.path = normalize_storage_path(path)
        self.prefix = _path_to_prefix(self.path)
        self.key_codec = key_codec
        self.if_unlistable = if_unlistable or defaults.if_unlistable
        if self.if_unlistable not in {'skip', 'raise'}:
            raise ValueError("if_unlistable must be 'skip' or 'raise'; found {!r}"
                             .format(self.if_unlistable))
        self.max_depth = defaults.max_depth if max_depth is None else max_depth
        self.log = log

    def _log(self, message):
        if self.log is not None:
            self.log(message)

    def _store_path(self, relpath):
        return self.prefix + relpath if relpath else self.path

    def _insert_node(self, aggregate, relpath, node):
        prefix = _path_to_prefix(relpath)
        if node.kind is NodeKind.ARRAY:
            aggregate.insert(prefix + array_meta_key, node.core)
        else:
            aggregate.insert(prefix + group_meta_key, node.core)
        if node.attrs is not None:
            aggregate.insert(prefix + attrs_key, node.attrs)

    def walk(self) -> AggregateMap:
        aggregate = AggregateMap(self.key_codec)

        root = read_group(self.store, self.path)
        if root.kind is NodeKind.GROUP:
            self._insert_node(aggregate, '', root)

        aggregate.merge(self._walk_group('', 0))
        return aggregate

    def _walk_group(self, relpath, depth) -> AggregateMap:
        aggregate = AggregateMap(self.key_codec)
        if depth > self.max_depth:
            raise HierarchyDepthError(self._store_path(relpath), self.max_depth)

        try:
            names = _listdir(self.store, self._store_path(relpath))
        except OSError as e:
            if self.if_unlistable == 'raise':
                raise
            self._log('skipping unlistable directory {!r}: {}'.format(relpath or '/', e))
            return aggregate

        for name in names:
            child = _path_to_prefix(relpath) + name

            # plain files are neither arrays nor groups
            node = _read_node(self.store, self.prefix + child + '/')
            if node.kind is NodeKind.NEITHER:
                continue

            self._log('{} {!r}'.format(node.kind.value.lower(), child))
            self._insert_node(aggregate, child, node)
            if node.kind is NodeKind.GROUP:
                aggregate.merge(self._walk_group(child, depth + 1))

        return aggregate


def walk_hierarchy(store, path=None, **kwargs) -> AggregateMap:
    """Collect the metadata documents of the group at `path` and of every
    node below it. Keyword arguments are passed through to
    :class:`HierarchyWalker`."""
    return HierarchyWalker(store, path=path, **kwargs).walk()
