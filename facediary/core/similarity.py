"""Landmark similarity scoring.

This module compares two landmark region sets and produces a weighted
similarity score in [0, 1]. Each region shared by both sets is scored by the
mean distance between index-paired points, then the per-region scores are
averaged with fixed region weights.
"""

import logging
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np

from ..models.landmarks import LandmarkRegionSet, Point, Region

logger = logging.getLogger(__name__)

# Ordered (region, weight) pairs. Inner lips are not compared.
REGION_WEIGHTS: Tuple[Tuple[Region, float], ...] = (
    (Region.LEFT_EYE, 2.0),
    (Region.RIGHT_EYE, 2.0),
    (Region.NOSE, 1.5),
    (Region.OUTER_LIPS, 1.5),
    (Region.FACE_CONTOUR, 1.0),
    (Region.LEFT_EYEBROW, 1.0),
    (Region.RIGHT_EYEBROW, 1.0),
)

MAX_DISTANCE = 0.2   # Distances at or above this score 0
NO_POINTS_DISTANCE = 1.0


def region_distance(reference: Sequence[Point], probe: Sequence[Point]) -> float:
    """Mean Euclidean distance between index-paired points.

    Only the first ``min(len(reference), len(probe))`` points are compared,
    in their original order. Point sequences are never resampled.

    Args:
        reference: Points of the reference region.
        probe: Points of the probe region.

    Returns:
        Mean distance, or 1.0 when there are no comparable points.
    """
    count = min(len(reference), len(probe))
    if count == 0:
        return NO_POINTS_DISTANCE

    ref = np.asarray(reference[:count], dtype=np.float64)
    cur = np.asarray(probe[:count], dtype=np.float64)
    distance = float(np.mean(np.linalg.norm(ref - cur, axis=1)))
    if not np.isfinite(distance):
        return NO_POINTS_DISTANCE
    return distance


def distance_to_similarity(distance: float) -> float:
    """Map a distance onto [0, 1], 0 distance being a perfect match."""
    similarity = 1.0 - min(distance, MAX_DISTANCE) / MAX_DISTANCE
    return max(0.0, min(1.0, similarity))


class SimilarityScorer:
    """Weighted landmark similarity between two region sets."""

    def __init__(self, weights: Sequence[Tuple[Region, float]] = REGION_WEIGHTS):
        self.weights = tuple((Region(region), float(weight)) for region, weight in weights)

    def region_similarities(
        self,
        reference: LandmarkRegionSet,
        probe: LandmarkRegionSet
    ) -> Dict[Region, float]:
        """Per-region similarity for every weighted region present in both sets."""
        similarities = {}
        for region, _ in self.weights:
            if region not in reference or region not in probe:
                continue
            distance = region_distance(reference[region], probe[region])
            similarities[region] = distance_to_similarity(distance)
        return similarities

    def score(self, reference: LandmarkRegionSet, probe: LandmarkRegionSet) -> float:
        """Compute the weighted similarity of ``probe`` against ``reference``.

        Regions missing from either set count towards neither the numerator
        nor the denominator.

        Args:
            reference: Enrolled landmark set.
            probe: Freshly detected landmark set.

        Returns:
            Similarity in [0, 1]; 0.0 when no region is comparable.
        """
        similarities = self.region_similarities(reference, probe)
        return self._combine(similarities)

    def _combine(self, similarities: Mapping[Region, float]) -> float:
        total_score = 0.0
        total_weight = 0.0
        for region, weight in self.weights:
            if region in similarities:
                total_score += similarities[region] * weight
                total_weight += weight

        if total_weight <= 0:
            return 0.0

        result = max(0.0, min(1.0, total_score / total_weight))
        breakdown = {r.value: round(s, 4) for r, s in similarities.items()}
        logger.debug(f"Region similarities: {breakdown} -> {result:.4f}")
        return result


# Create global scorer instance
scorer = SimilarityScorer()


def score(reference: LandmarkRegionSet, probe: LandmarkRegionSet) -> float:
    """Weighted similarity score using the default region weights.

    Args:
        reference: Enrolled landmark set.
        probe: Freshly detected landmark set.

    Returns:
        Similarity in [0, 1].
    """
    return scorer.score(reference, probe)
