from collections.abc import Mapping
from typing import Any, Dict, Iterator

from zmetadata.errors import DuplicateKeyError
from zmetadata.keys import IdentityKeyCodec


class AggregateMap(Mapping):
    """Ordered collection of metadata documents keyed by hierarchical key.

    Documents are held under the tokens produced by `key_codec` and exposed
    under their decoded keys, in insertion order.

    Parameters
    ----------
    key_codec : object, optional
        Codec with ``encode`` and ``decode`` methods. Defaults to
        :class:`zmetadata.keys.IdentityKeyCodec`. Maps built for different
        subtrees of one hierarchy should share a codec.

    Examples
    --------
    >>> from zmetadata.mappings import AggregateMap
    >>> m = AggregateMap()
    >>> m.insert('.zgroup', {'zarr_format': 2})
    >>> m.insert('foo/.zarray', {'shape': [10], 'zarr_format': 2})
    >>> list(m)
    ['.zgroup', 'foo/.zarray']

    """

    def __init__(self, key_codec=None):
        if key_codec is None:
            key_codec = IdentityKeyCodec()
        self.key_codec = key_codec
        self._docs: Dict[str, Any] = dict()
        self._tokens: Dict[str, str] = dict()

    def insert(self, key: str, doc: Any):
        """Add `doc` under `key`. Inserting a different document under a key
        already held raises :class:`zmetadata.errors.DuplicateKeyError`."""
        token = self.key_codec.encode(key)
        if token in self._docs and self._docs[token] != doc:
            raise DuplicateKeyError(key)
        self._tokens[key] = token
        self._docs[token] = doc

    def merge(self, other: 'AggregateMap'):
        """Add every entry of `other`, replacing documents held under the
        same key."""
        for key, doc in other.items():
            token = self.key_codec.encode(key)
            self._tokens[key] = token
            self._docs[token] = doc

    def tokens(self) -> Iterator[str]:
        return iter(self._docs)

    def to_dict(self) -> Dict[str, Any]:
        return {self.key_codec.decode(token): doc for token, doc in self._docs.items()}

    def __getitem__(self, key):
        return self._docs[self._tokens[key]]

    def __contains__(self, key):
        return key in self._tokens

    def __iter__(self):
        for token in self._docs:
            yield self.key_codec.decode(token)

    def __len__(self):
        return len(self._docs)

    def __repr__(self):
        return '<{} with {} documents>'.format(type(self).__name__, len(self))
