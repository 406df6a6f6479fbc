import numpy as np
import pytest

pytest.importorskip("face_recognition")

from facediary.core import landmark_detection  # noqa: E402
from facediary.core.landmark_detection import FaceLandmarkDetector  # noqa: E402
from facediary.models.landmarks import Region  # noqa: E402

IMAGE = np.zeros((200, 200, 3), dtype=np.uint8)
BOX = (50, 150, 150, 50)


def dlib_points():
    """68 points inside BOX whose coordinates encode their dlib index."""
    return [(50 + i, 60 + i) for i in range(68)]


def face_landmarks_dict(points):
    """Same grouping face_recognition applies to dlib's 68 points."""
    return {
        'chin': points[0:17],
        'left_eyebrow': points[17:22],
        'right_eyebrow': points[22:27],
        'nose_bridge': points[27:31],
        'nose_tip': points[31:36],
        'left_eye': points[36:42],
        'right_eye': points[42:48],
        'top_lip': points[48:55] + [points[64]] + [points[63]] + [points[62]] + [points[61]] + [points[60]],
        'bottom_lip': points[54:60] + [points[48]] + [points[60]] + [points[67]] + [points[66]] + [points[65]] + [points[64]],
    }


def normalized(index):
    x, y = dlib_points()[index]
    return ((x - 50) / 100.0, 1.0 - (y - 50) / 100.0)


@pytest.fixture
def patched(monkeypatch):
    calls = {}

    def face_locations(image, model="hog"):
        calls['model'] = model
        return calls.get('locations', [BOX])

    def face_landmarks(image, face_locations=None, model="large"):
        calls['landmark_locations'] = face_locations
        return [face_landmarks_dict(dlib_points())]

    monkeypatch.setattr(landmark_detection.face_recognition, "face_locations", face_locations)
    monkeypatch.setattr(landmark_detection.face_recognition, "face_landmarks", face_landmarks)
    return calls


def test_regions_are_mapped_from_dlib_points(patched):
    regions = FaceLandmarkDetector().detect(IMAGE)

    assert set(regions) == set(Region)
    assert list(regions[Region.OUTER_LIPS]) == [pytest.approx(normalized(i)) for i in range(48, 60)]
    assert list(regions[Region.INNER_LIPS]) == [pytest.approx(normalized(i)) for i in range(60, 68)]
    assert list(regions[Region.NOSE]) == [pytest.approx(normalized(i)) for i in range(27, 36)]
    assert len(regions[Region.FACE_CONTOUR]) == 17
    assert len(regions[Region.LEFT_EYEBROW]) == 5


def test_points_are_normalized_with_y_up(patched):
    regions = FaceLandmarkDetector().detect(IMAGE)
    x, y = regions[Region.FACE_CONTOUR][0]
    assert x == pytest.approx(0.0)
    assert y == pytest.approx(0.9)
    for points in regions.values():
        for px, py in points:
            assert 0.0 <= px <= 1.0
            assert 0.0 <= py <= 1.0


def test_largest_plausible_face_wins(patched):
    small = (10, 40, 40, 10)
    tiny = (0, 5, 5, 0)
    stretched = (0, 200, 40, 0)
    patched['locations'] = [small, tiny, stretched, BOX]

    detector = FaceLandmarkDetector(model="cnn")
    assert detector.locate_faces(IMAGE) == [BOX, small]

    detector.detect(IMAGE)
    assert patched['model'] == "cnn"
    assert patched['landmark_locations'] == [BOX]


def test_no_face(patched):
    patched['locations'] = []
    assert FaceLandmarkDetector().detect(IMAGE) is None


def test_empty_image():
    with pytest.raises(ValueError):
        FaceLandmarkDetector().detect(np.zeros((0, 0, 3), dtype=np.uint8))


def test_unknown_model():
    with pytest.raises(ValueError):
        FaceLandmarkDetector(model="mtcnn")
