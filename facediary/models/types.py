"""Request and response payload types for the HTTP API"""
from typing import List, Optional
from typing_extensions import TypedDict


class ImageRequest(TypedDict):
    image: str


class EnrollmentResponse(TypedDict):
    identity: str
    createdAt: str
    regions: List[str]


class EnrollmentStatus(TypedDict):
    enrolled: bool
    identity: Optional[str]
    createdAt: Optional[str]


class MoodScore(TypedDict):
    mood: str
    emoji: str
    score: float
    percentage: str


class VerificationResponse(TypedDict):
    accepted: bool
    score: float
    primaryMood: Optional[str]
    moods: List[MoodScore]


class ErrorResponse(TypedDict):
    error: str
    traceback: Optional[str]
