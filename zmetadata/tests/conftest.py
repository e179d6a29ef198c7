from pathlib import Path

import pytest

from zmetadata.storage import DirectoryStore


@pytest.fixture(params=[str, Path])
def path_type(request):
    return request.param


@pytest.fixture
def store(tmpdir):
    return DirectoryStore(str(tmpdir.join('data.zarr')))
