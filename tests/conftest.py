import pytest

from .factories import make_face


@pytest.fixture
def face():
    return make_face()


@pytest.fixture
def smiling_face():
    return make_face(corner_y=0.47, top_y=0.45, bottom_y=0.45)


@pytest.fixture
def stranger():
    return make_face(offset=0.15)
