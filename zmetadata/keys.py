"""Key codecs used by :class:`zmetadata.mappings.AggregateMap` for its
internal keys.

A codec turns a hierarchical key such as ``'g1/a1/.zarray'`` into the token
used internally and back again. The default :class:`IdentityKeyCodec` keeps
keys unchanged. :class:`IdentifierKeyCodec` reproduces the token scheme of
producers that can only hold identifier-like keys, so that their
intermediate results can be compared with ours.

"""
from typing import Dict

from zmetadata.errors import DuplicateKeyError


class IdentityKeyCodec(object):
    """Codec where every key is its own token."""

    def encode(self, key: str) -> str:
        return key

    def decode(self, token: str) -> str:
        return token

    def __repr__(self):
        return '{}()'.format(type(self).__name__)


class IdentifierKeyCodec(object):
    """Codec producing tokens that are valid identifiers of at most
    `max_length` characters.

    Separators, dots and dashes are replaced with underscores, tokens not
    starting with a letter are prefixed with ``'x'`` and overlong tokens keep
    only their last `max_length` characters. Every token handed out is
    remembered so it can be decoded to the original key.

    Parameters
    ----------
    max_length : int, optional
        Maximum token length.

    Examples
    --------
    >>> from zmetadata.keys import IdentifierKeyCodec
    >>> codec = IdentifierKeyCodec()
    >>> codec.encode('g1/a-1/.zarray')
    'g1_a_1__zarray'
    >>> codec.encode('.zgroup')
    'x_zgroup'
    >>> codec.decode('x_zgroup')
    '.zgroup'

    """

    def __init__(self, max_length: int = 63):
        self.max_length = max_length
        self._keys: Dict[str, str] = dict()

    def _tokenize(self, key):
        token = key
        for char in '/\\.-':
            token = token.replace(char, '_')
        if token and not token[0].isalpha():
            token = 'x' + token
        if not token:
            token = 'root'
        if len(token) > self.max_length:
            token = token[-self.max_length:]
            if token.startswith('_'):
                token = token[1:]
        return token

    def encode(self, key: str) -> str:
        token = self._tokenize(key)
        previous = self._keys.setdefault(token, key)
        if previous != key:
            raise DuplicateKeyError(token)
        return token

    def decode(self, token: str) -> str:
        return self._keys[token]

    def __repr__(self):
        return '{}(max_length={})'.format(type(self).__name__, self.max_length)
