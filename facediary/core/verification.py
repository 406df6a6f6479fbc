"""Face verification service.

This module turns landmark samples into enrollment templates and verifies
probe samples against a stored template. A probe is accepted when its
weighted landmark similarity reaches the match threshold; accepted probes are
additionally classified into a mood distribution.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from ..exceptions import NoFaceDetected
from ..models.landmarks import LandmarkRegionSet
from ..models.template import EnrollmentTemplate, VerificationOutcome
from .expression import ExpressionClassifier
from .similarity import SimilarityScorer

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.85


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FaceVerificationService:
    """Enrolls and verifies faces from landmark samples."""

    def __init__(
        self,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        scorer: Optional[SimilarityScorer] = None,
        classifier: Optional[ExpressionClassifier] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Match threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold
        self.scorer = scorer or SimilarityScorer()
        self.classifier = classifier or ExpressionClassifier()
        self.clock = clock

    def enroll(self, sample: LandmarkRegionSet) -> EnrollmentTemplate:
        """Build an enrollment template from a landmark sample.

        Args:
            sample: Landmarks detected in the enrollment frame.

        Returns:
            New template with a fresh identity marker and the current time.

        Raises:
            NoFaceDetected: If the sample holds no regions.
        """
        if sample is None or sample.is_empty:
            raise NoFaceDetected("Enrollment sample contains no landmark regions")

        template = EnrollmentTemplate(
            identity=uuid.uuid4().hex,
            created_at=self.clock(),
            landmarks=sample.serialize()
        )
        logger.info(
            f"Enrollment template {template.identity} created "
            f"from {len(sample)} regions ({len(template.landmarks)} bytes)"
        )
        return template

    def verify(self, template: EnrollmentTemplate, probe: LandmarkRegionSet) -> VerificationOutcome:
        """Verify a probe sample against an enrollment template.

        The mood is inferred from the probe, never from the stored template.

        Args:
            template: Stored enrollment template.
            probe: Landmarks detected in the current frame.

        Returns:
            Accepted outcome with a mood distribution, or a rejected outcome
            without one.

        Raises:
            TemplateCorrupt: If the template landmarks cannot be decoded.
            NoFaceDetected: If the probe holds no regions.
        """
        reference = LandmarkRegionSet.deserialize(template.landmarks)

        if probe is None or probe.is_empty:
            raise NoFaceDetected("Probe sample contains no landmark regions")

        similarity = self.scorer.score(reference, probe)
        accepted = similarity >= self.threshold
        logger.info(
            f"Similarity score: {similarity:.4f} "
            f"(threshold {self.threshold:.2f}) -> {'accepted' if accepted else 'rejected'}"
        )

        if not accepted:
            return VerificationOutcome(accepted=False, score=similarity)

        mood = self.classifier.classify(probe)
        return VerificationOutcome(accepted=True, score=similarity, mood=mood)

