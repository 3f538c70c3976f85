import os

import pytest

PACK_DIR = os.path.join(os.path.dirname(__file__), "packs")


@pytest.fixture
def pack_dir():
    return PACK_DIR
