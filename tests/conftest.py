import os
import sys

import pytest

# Add tests and project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import PNG_SIGNATURE, FakeClock


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "input.png"
    path.write_bytes(PNG_SIGNATURE + b"rest-of-image")
    return path
