import pytest

from zmetadata.errors import DuplicateKeyError
from zmetadata.keys import IdentifierKeyCodec
from zmetadata.mappings import AggregateMap


def test_insert_order():
    m = AggregateMap()
    m.insert('.zgroup', {'zarr_format': 2})
    m.insert('b/.zarray', {'shape': [1]})
    m.insert('a/.zgroup', {'zarr_format': 2})
    assert ['.zgroup', 'b/.zarray', 'a/.zgroup'] == list(m)
    assert 3 == len(m)
    assert 'b/.zarray' in m
    assert 'a/.zarray' not in m
    assert {'shape': [1]} == m['b/.zarray']
    with pytest.raises(KeyError):
        m['a/.zarray']


def test_insert_duplicate():
    m = AggregateMap()
    m.insert('g1/.zattrs', {'x': 1})

    # same document again is a no-op
    m.insert('g1/.zattrs', {'x': 1})
    assert 1 == len(m)

    with pytest.raises(DuplicateKeyError):
        m.insert('g1/.zattrs', {'x': 2})
    assert {'x': 1} == m['g1/.zattrs']


def test_merge_last_write_wins():
    parent = AggregateMap()
    parent.insert('g1/.zgroup', {'zarr_format': 2})
    parent.insert('g1/.zattrs', {'x': 1})

    child = AggregateMap()
    child.insert('g1/.zattrs', {'x': 2})
    child.insert('g1/a1/.zarray', {'shape': [10]})

    parent.merge(child)
    assert ['g1/.zgroup', 'g1/.zattrs', 'g1/a1/.zarray'] == list(parent)
    assert {'x': 2} == parent['g1/.zattrs']

    # merged map is unchanged
    assert ['g1/.zattrs', 'g1/a1/.zarray'] == list(child)


def test_to_dict():
    m = AggregateMap()
    assert {} == m.to_dict()
    m.insert('.zgroup', {'zarr_format': 2})
    m.insert('arr/.zarray', {'shape': [10], 'zarr_format': 2})
    d = m.to_dict()
    assert isinstance(d, dict)
    assert ['.zgroup', 'arr/.zarray'] == list(d)
    assert {'shape': [10], 'zarr_format': 2} == d['arr/.zarray']


def test_identifier_codec():
    codec = IdentifierKeyCodec()
    m = AggregateMap(key_codec=codec)
    m.insert('.zgroup', {'zarr_format': 2})
    m.insert('sub/group/array/.zarray', {'shape': [3]})

    # internal keys are tokens, exposed keys are the original paths
    assert ['x_zgroup', 'sub_group_array__zarray'] == list(m.tokens())
    assert ['.zgroup', 'sub/group/array/.zarray'] == list(m)
    assert {'shape': [3]} == m['sub/group/array/.zarray']
    assert ['.zgroup', 'sub/group/array/.zarray'] == list(m.to_dict())

    # maps sharing a codec merge by original key
    other = AggregateMap(key_codec=codec)
    other.insert('sub/group/array/.zattrs', {'units': 'm'})
    m.merge(other)
    assert 'sub/group/array/.zattrs' in m


def test_identifier_codec_collision():
    m = AggregateMap(key_codec=IdentifierKeyCodec())
    m.insert('a-b/.zarray', {'shape': [1]})
    with pytest.raises(DuplicateKeyError):
        m.insert('a.b/.zarray', {'shape': [1]})


def test_repr():
    m = AggregateMap()
    m.insert('.zgroup', {'zarr_format': 2})
    assert '<AggregateMap with 1 documents>' == repr(m)
