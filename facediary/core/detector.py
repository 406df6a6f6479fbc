"""Landmark detector interface."""

from typing import Any, Optional

from typing_extensions import Protocol

from ..exceptions import NoFaceDetected
from ..models.landmarks import LandmarkRegionSet


class LandmarkDetector(Protocol):
    """Anything that turns an image into landmark regions."""

    def detect(self, image: Any) -> Optional[LandmarkRegionSet]:
        ...


def detect_landmarks(detector: LandmarkDetector, image: Any) -> LandmarkRegionSet:
    """Run a landmark detector and turn a miss into ``NoFaceDetected``.

    Args:
        detector: Landmark detector to run.
        image: Input frame.

    Returns:
        Non-empty landmark regions.

    Raises:
        NoFaceDetected: If the detector found no face.
    """
    regions = detector.detect(image)
    if regions is None or regions.is_empty:
        raise NoFaceDetected("No face detected in image")
    return regions
