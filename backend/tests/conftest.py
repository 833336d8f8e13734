import pytest

from factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()
