import json
import time

from asciitree import BoxStyle, LeftAligned
from asciitree.traversal import Traversal
from numcodecs.compat import ensure_text

from typing import Any, Callable, Optional, Tuple, Union


def json_dumps(o: Any) -> bytes:
    """Write JSON in a consistent, human-readable way.

    Keys are written in insertion order and non-ASCII characters are kept
    as-is, so that object keys in the output are byte-for-byte the strings
    held in memory.
    """
    return json.dumps(o, indent=4, sort_keys=False, ensure_ascii=False,
                      separators=(',', ': ')).encode('utf-8')


def json_loads(s: Union[str, bytes]) -> Any:
    """Read JSON in a consistent way."""
    return json.loads(ensure_text(s, 'utf-8'))


def normalize_storage_path(path: Union[str, bytes, None]) -> str:

    # handle bytes
    if isinstance(path, bytes):
        path = str(path, 'utf-8')

    # ensure str
    if path is not None and not isinstance(path, str):
        path = str(path)

    if path:

        # convert backslash to forward slash
        path = path.replace('\\', '/')

        # ensure no leading or trailing slash
        path = path.strip('/')

        # collapse any repeated slashes
        segments = [s for s in path.split('/') if s]
        path = '/'.join(segments)

        # don't allow path segments with just '.' or '..'
        if any(s in {'.', '..'} for s in segments):
            raise ValueError("path containing '.' or '..' segment not allowed")

    else:
        path = ''

    return path


def retry_call(callabl: Callable,
               args=None,
               kwargs=None,
               exceptions: Tuple[Any, ...] = (),
               retries: int = 10,
               wait: float = 0.1) -> Any:
    """
    Make several attempts to invoke the callable. If one of the given exceptions
    is raised, wait the given period of time and retry up to the given number of
    retries.
    """

    if args is None:
        args = ()
    if kwargs is None:
        kwargs = {}

    for attempt in range(1, retries+1):
        try:
            return callabl(*args, **kwargs)
        except exceptions:
            if attempt < retries:
                time.sleep(wait)
            else:
                raise


class NoLock(object):
    """A lock that doesn't lock."""

    def __enter__(self):
        pass

    def __exit__(self, *args):
        pass


nolock = NoLock()


class TreeNode(object):
    """A node of the hierarchy described by a consolidated metadata store.

    The store must provide ``listdir`` and hold keys such as
    ``'g1/a1/.zarray'``.
    """

    def __init__(self, store, path: str = '', depth: int = 0, level: Optional[int] = None):
        self.store = store
        self.path = path
        self.depth = depth
        self.level = level

    def _key(self, name):
        return self.path + '/' + name if self.path else name

    def is_array(self):
        return self._key('.zarray') in self.store

    def is_group(self):
        return self._key('.zgroup') in self.store

    def get_children(self):
        if self.is_group():
            if self.level is None or self.depth < self.level:
                depth = self.depth + 1
                children = [TreeNode(self.store, self._key(name), depth=depth, level=self.level)
                            for name in self.store.listdir(self.path)]
                return [c for c in children if c.is_array() or c.is_group()]
        return []

    def get_text(self):
        name = self.path.split('/')[-1] or '/'
        if self.is_array():
            meta = self.store[self._key('.zarray')]
            name += ' {} {}'.format(tuple(meta.get('shape', ())), meta.get('dtype'))
        return name

    def get_type(self):
        return 'Array' if self.is_array() else 'Group'


class TreeTraversal(Traversal):

    def get_children(self, node):
        return node.get_children()

    def get_root(self, tree):
        return tree

    def get_text(self, node):
        return node.get_text()


class TreeViewer(object):

    def __init__(self, store, path='', level=None):

        self.store = store
        self.path = path
        self.level = level

        self.text_kwargs = dict(
            horiz_len=2,
            label_space=1,
            indent=1
        )

        self.bytes_kwargs = dict(
            UP_AND_RIGHT="+",
            HORIZONTAL="-",
            VERTICAL="|",
            VERTICAL_AND_RIGHT="+"
        )

        self.unicode_kwargs = dict(
            UP_AND_RIGHT="└",
            HORIZONTAL="─",
            VERTICAL="│",
            VERTICAL_AND_RIGHT="├"
        )

    def _draw(self, gfx):
        drawer = LeftAligned(
            traverse=TreeTraversal(),
            draw=BoxStyle(gfx=gfx, **self.text_kwargs)
        )
        root = TreeNode(self.store, self.path, level=self.level)
        return drawer(root)

    def __bytes__(self):
        # node names may hold non-ascii characters
        return self._draw(self.bytes_kwargs).encode()

    def __str__(self):
        return self._draw(self.unicode_kwargs)

    def __repr__(self):
        return self.__str__()
