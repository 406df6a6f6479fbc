"""Data models and type definitions"""
from .landmarks import Point, Region, LandmarkRegionSet
from .mood import Mood, MoodDistribution, primary_mood, sorted_moods, percentage_string
from .template import EnrollmentTemplate, VerificationOutcome
from .types import (
    ImageRequest,
    EnrollmentResponse,
    EnrollmentStatus,
    MoodScore,
    VerificationResponse,
    ErrorResponse
)

__all__ = [
    'Point',
    'Region',
    'LandmarkRegionSet',
    'Mood',
    'MoodDistribution',
    'primary_mood',
    'sorted_moods',
    'percentage_string',
    'EnrollmentTemplate',
    'VerificationOutcome',
    'ImageRequest',
    'EnrollmentResponse',
    'EnrollmentStatus',
    'MoodScore',
    'VerificationResponse',
    'ErrorResponse'
]
