"""Facial landmark detection.

This module locates faces in an image with the face_recognition HOG/CNN
detector and converts dlib's 68-point landmarks into a ``LandmarkRegionSet``
normalized to the detected face box.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import face_recognition
import numpy as np

from ..models.landmarks import LandmarkRegionSet, Region

logger = logging.getLogger(__name__)

# (top, right, bottom, left) as returned by face_recognition
FaceLocation = Tuple[int, int, int, int]


def _outer_lips(top_lip: Sequence, bottom_lip: Sequence) -> List:
    """Outer lip contour in dlib order (points 48-59)."""
    return list(top_lip[0:7]) + list(bottom_lip[1:6])


def _inner_lips(top_lip: Sequence, bottom_lip: Sequence) -> List:
    """Inner lip contour in dlib order (points 60-67)."""
    return list(reversed(top_lip[7:12])) + list(reversed(bottom_lip[8:11]))


class FaceLandmarkDetector:
    """Detects the dominant face in an image and extracts its landmark regions."""

    # Constants for face detection
    MIN_FACE_RATIO = 0.01  # Minimum face size relative to image
    MIN_ASPECT_RATIO = 0.5  # Minimum width/height ratio
    MAX_ASPECT_RATIO = 1.5  # Maximum width/height ratio

    def __init__(self, model: str = "hog"):
        """Initialize the detector.

        Args:
            model: face_recognition location model, "hog" or "cnn".
        """
        if model not in ("hog", "cnn"):
            raise ValueError(f"Unsupported face location model: {model}")
        self.model = model

    def locate_faces(self, image: np.ndarray) -> List[FaceLocation]:
        """Find plausible face boxes, largest first.

        Args:
            image: Input image in BGR format.

        Returns:
            Face locations that pass the size and aspect-ratio filters.
        """
        # Convert BGR to RGB (face_recognition uses RGB)
        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        face_locations = face_recognition.face_locations(rgb_image, model=self.model)

        height, width = image.shape[:2]
        img_area = height * width
        results = []

        for (top, right, bottom, left) in face_locations:
            w = right - left
            h = bottom - top
            if w <= 0 or h <= 0:
                continue

            # Filter out small faces (likely false detections)
            if (w * h) / img_area < self.MIN_FACE_RATIO:
                continue

            if not (self.MIN_ASPECT_RATIO <= w / h <= self.MAX_ASPECT_RATIO):
                continue

            results.append((top, right, bottom, left))

        # Larger faces are usually the subject in front of the camera
        results.sort(key=lambda loc: (loc[1] - loc[3]) * (loc[2] - loc[0]), reverse=True)
        logger.debug(f"Found {len(face_locations)} faces, {len(results)} after filtering")
        return results

    def extract_regions(self, image: np.ndarray, location: FaceLocation) -> LandmarkRegionSet:
        """Extract landmark regions for one face, normalized to its box.

        Y is flipped so that it grows upward from the bottom of the box.

        Args:
            image: Input image in BGR format.
            location: Face box as (top, right, bottom, left).

        Returns:
            Landmark regions of the face; empty if landmarks are unavailable.
        """
        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        landmarks = face_recognition.face_landmarks(
            rgb_image,
            face_locations=[location],
            model="large"
        )
        if not landmarks:
            return LandmarkRegionSet()

        parts = landmarks[0]
        raw: Dict[Region, List] = {}

        if 'left_eye' in parts:
            raw[Region.LEFT_EYE] = parts['left_eye']
        if 'right_eye' in parts:
            raw[Region.RIGHT_EYE] = parts['right_eye']
        if 'nose_bridge' in parts or 'nose_tip' in parts:
            raw[Region.NOSE] = list(parts.get('nose_bridge', [])) + list(parts.get('nose_tip', []))
        if 'chin' in parts:
            raw[Region.FACE_CONTOUR] = parts['chin']
        if 'left_eyebrow' in parts:
            raw[Region.LEFT_EYEBROW] = parts['left_eyebrow']
        if 'right_eyebrow' in parts:
            raw[Region.RIGHT_EYEBROW] = parts['right_eyebrow']

        top_lip = parts.get('top_lip', [])
        bottom_lip = parts.get('bottom_lip', [])
        if len(top_lip) == 12 and len(bottom_lip) == 12:
            raw[Region.OUTER_LIPS] = _outer_lips(top_lip, bottom_lip)
            raw[Region.INNER_LIPS] = _inner_lips(top_lip, bottom_lip)

        top, right, bottom, left = location
        width = float(right - left)
        height = float(bottom - top)

        regions = {}
        for region, points in raw.items():
            if not points:
                continue
            pts = np.asarray(points, dtype=np.float64)
            xs = (pts[:, 0] - left) / width
            ys = 1.0 - (pts[:, 1] - top) / height
            normalized = np.clip(np.stack([xs, ys], axis=1), 0.0, 1.0)
            regions[region] = normalized.tolist()

        return LandmarkRegionSet(regions)

    def detect(self, image: np.ndarray) -> Optional[LandmarkRegionSet]:
        """Detect the dominant face and return its landmark regions.

        Args:
            image: Input image in BGR format.

        Returns:
            Landmark regions, or None if no usable face was found.

        Raises:
            ValueError: If the input image is invalid.
        """
        if image is None or getattr(image, 'size', 0) == 0:
            raise ValueError("Input image is empty")

        locations = self.locate_faces(image)
        if not locations:
            logger.info("No faces detected in image")
            return None

        regions = self.extract_regions(image, locations[0])
        if regions.is_empty:
            logger.info("Face found but no landmarks extracted")
            return None

        logger.info(f"Detected face with regions: {[r.value for r in regions]}")
        return regions
