"""Core face verification and mood inference functionality"""
from .similarity import SimilarityScorer, score
from .expression import ExpressionClassifier, classify
from .verification import FaceVerificationService, DEFAULT_MATCH_THRESHOLD
from .detector import LandmarkDetector, detect_landmarks

__all__ = [
    'SimilarityScorer',
    'score',
    'ExpressionClassifier',
    'classify',
    'FaceVerificationService',
    'DEFAULT_MATCH_THRESHOLD',
    'LandmarkDetector',
    'detect_landmarks'
]
