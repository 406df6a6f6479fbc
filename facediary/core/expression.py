"""Rule-based expression classification.

This module infers a mood distribution from a single landmark region set. It
is a fixed heuristic, not a learned model: three geometric cues (smile, brow
slope, mouth openness) each produce partial mood scores which are summed,
normalized and pruned.
"""

import logging
from typing import Dict, Optional, Sequence

from ..models.landmarks import LandmarkRegionSet, Point, Region
from ..models.mood import Mood, MoodDistribution

logger = logging.getLogger(__name__)

# Smile: corner-vs-center delta window mapped onto [0, 1]
SMILE_DELTA_RANGE = 0.02

# Eyebrows: average slope scaled so that +-0.05 maps onto +-1
EYEBROW_SLOPE_RANGE = 0.05
EYEBROW_SURPRISE_THRESHOLD = 0.6
EYEBROW_FROWN_THRESHOLD = -0.3

# Mouth openness: outer lip height window mapped onto [0, 1]
MOUTH_HEIGHT_RANGE = 0.1
MOUTH_SURPRISE_THRESHOLD = 0.7

# Merging
WEAK_SIGNAL_TOTAL = 0.2
FALLBACK_SCORES = {Mood.CALM: 0.7, Mood.NEUTRAL: 0.3}
MIN_MOOD_CONFIDENCE = 0.1


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def smile_score(outer_lips: Sequence[Point]) -> float:
    """Happiness score from how far the mouth corners sit above its center.

    Corners are taken at index 0 and n/2, the upper and lower centers at n/4
    and 3n/4 of the outer lip contour.

    Returns:
        Score in [0, 1]; 0.0 with fewer than four points.
    """
    count = len(outer_lips)
    if count < 4:
        return 0.0

    left_corner = outer_lips[0]
    right_corner = outer_lips[count // 2]
    top_center = outer_lips[count // 4]
    bottom_center = outer_lips[3 * count // 4]

    mouth_center_y = (top_center[1] + bottom_center[1]) / 2.0
    corner_y = (left_corner[1] + right_corner[1]) / 2.0
    delta = corner_y - mouth_center_y

    return _clamp((delta + SMILE_DELTA_RANGE) / (2 * SMILE_DELTA_RANGE), 0.0, 1.0)


def eyebrow_score(left: Sequence[Point], right: Sequence[Point]) -> float:
    """Average brow slope, positive when raised and negative when lowered.

    The left brow runs outer to inner, the right brow inner to outer.

    Returns:
        Slope in units of 0.05, unbounded; 0.0 when either brow has fewer
        than two points.
    """
    if len(left) < 2 or len(right) < 2:
        return 0.0

    left_outer, left_inner = left[0], left[-1]
    right_inner, right_outer = right[0], right[-1]

    left_slope = left_outer[1] - left_inner[1]
    right_slope = right_inner[1] - right_outer[1]

    average_slope = (left_slope + right_slope) / 2.0
    return average_slope / EYEBROW_SLOPE_RANGE


def mouth_openness(outer_lips: Sequence[Point], inner_lips: Sequence[Point]) -> float:
    """Vertical opening of the outer lip contour.

    Returns:
        Score in [0, 1]; 0.0 when either lip contour has fewer than four points.
    """
    if len(outer_lips) < 4 or len(inner_lips) < 4:
        return 0.0

    count = len(outer_lips)
    top = outer_lips[count // 4]
    bottom = outer_lips[3 * count // 4]
    height = abs(bottom[1] - top[1])

    return _clamp(height / MOUTH_HEIGHT_RANGE, 0.0, 1.0)


class ExpressionClassifier:
    """Heuristic mood classifier over landmark region sets."""

    def __init__(self, min_confidence: float = MIN_MOOD_CONFIDENCE):
        self.min_confidence = min_confidence

    def partial_scores(self, sample: LandmarkRegionSet) -> Dict[Mood, float]:
        """Unnormalized per-mood scores from each heuristic."""
        scores = {mood: 0.0 for mood in Mood}

        outer_lips = sample.get(Region.OUTER_LIPS)
        inner_lips = sample.get(Region.INNER_LIPS)
        left_brow = sample.get(Region.LEFT_EYEBROW)
        right_brow = sample.get(Region.RIGHT_EYEBROW)

        if outer_lips is not None:
            scores[Mood.HAPPINESS] = smile_score(outer_lips)

        if left_brow is not None and right_brow is not None:
            brows = eyebrow_score(left_brow, right_brow)
            if brows > EYEBROW_SURPRISE_THRESHOLD:
                scores[Mood.SURPRISE] = brows
            elif brows < EYEBROW_FROWN_THRESHOLD:
                scores[Mood.ANGER] = abs(brows) * 0.5
                scores[Mood.SADNESS] = abs(brows) * 0.5

        if outer_lips is not None and inner_lips is not None:
            openness = mouth_openness(outer_lips, inner_lips)
            if openness > MOUTH_SURPRISE_THRESHOLD:
                scores[Mood.SURPRISE] = max(scores[Mood.SURPRISE], openness)

        return scores

    def classify_unpruned(self, sample: LandmarkRegionSet) -> MoodDistribution:
        """Normalized distribution before low-confidence moods are dropped.

        Falls back to exactly ``{calm: 0.7, neutral: 0.3}`` when the partial
        scores sum to less than 0.2.
        """
        scores = self.partial_scores(sample)
        total = sum(scores.values())

        if total < WEAK_SIGNAL_TOTAL:
            logger.debug(f"Weak expression signal ({total:.3f}), using calm/neutral fallback")
            return MoodDistribution(FALLBACK_SCORES)

        return MoodDistribution({mood: score / total for mood, score in scores.items()})

    def classify(self, sample: LandmarkRegionSet) -> MoodDistribution:
        """Infer a mood distribution from one landmark sample.

        Args:
            sample: Detected landmark regions.

        Returns:
            Normalized distribution with moods at or below the minimum
            confidence removed.
        """
        distribution = self.classify_unpruned(sample).pruned(self.min_confidence)
        logger.info(f"Mood distribution: {distribution.to_dict()}")
        return distribution


# Create global classifier instance
classifier = ExpressionClassifier()


def classify(sample: LandmarkRegionSet, min_confidence: Optional[float] = None) -> MoodDistribution:
    """Classify a landmark sample with the default classifier.

    Args:
        sample: Detected landmark regions.
        min_confidence: Optional override of the pruning threshold.

    Returns:
        Pruned mood distribution.
    """
    if min_confidence is None:
        return classifier.classify(sample)
    return ExpressionClassifier(min_confidence).classify(sample)
