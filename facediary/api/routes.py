"""Face enrollment and verification API routes.

This module provides the API endpoints for registering the diary owner's
face, verifying a captured photo against it, and resetting the enrollment.
Images are sent as base64 strings.
"""

import logging
import traceback
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.concurrency import run_in_threadpool

from ..core.detector import LandmarkDetector, detect_landmarks
from ..core.verification import FaceVerificationService
from ..exceptions import NoFaceDetected, TemplateCorrupt
from ..models.mood import MoodDistribution, percentage_string
from ..models.types import (
    ImageRequest,
    EnrollmentResponse,
    EnrollmentStatus,
    MoodScore,
    VerificationResponse,
    ErrorResponse
)
from ..services.credential_store import CredentialStore
from ..utils.image import ImageProcessingError, decode_base64_image

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


def get_detector(request: Request) -> LandmarkDetector:
    return request.app.state.detector


def get_service(request: Request) -> FaceVerificationService:
    return request.app.state.service


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def _mood_scores(mood: MoodDistribution) -> List[MoodScore]:
    return [
        {
            'mood': m.value,
            'emoji': m.emoji,
            'score': round(score, 4),
            'percentage': percentage_string(score)
        }
        for m, score in mood.sorted()
    ]


def _internal_error(e: Exception) -> HTTPException:
    error_details: ErrorResponse = {
        'error': str(e),
        'traceback': traceback.format_exc()
    }
    logger.error(f"Unexpected error: {type(e).__name__}: {str(e)}", exc_info=e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_details
    )


@router.get("/enrollment", response_model=EnrollmentStatus)
async def enrollment_status(store: CredentialStore = Depends(get_store)) -> Dict:
    """Report whether a face template is enrolled."""
    try:
        template = store.get()
    except TemplateCorrupt as e:
        logger.warning(f"Stored template is corrupt: {str(e)}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if template is None:
        return {'enrolled': False, 'identity': None, 'createdAt': None}
    return {
        'enrolled': True,
        'identity': template.identity,
        'createdAt': template.created_at.isoformat()
    }


@router.post("/enrollment", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_face(
    request_data: ImageRequest,
    detector: LandmarkDetector = Depends(get_detector),
    service: FaceVerificationService = Depends(get_service),
    store: CredentialStore = Depends(get_store)
) -> Dict:
    """Register the face in the given photo, replacing any previous enrollment.

    Args:
        request_data: Dictionary containing the base64-encoded photo.
            - image: Base64 string of the enrollment photo

    Returns:
        Dictionary describing the new template:
            - identity: Opaque identity marker
            - createdAt: ISO-8601 creation time
            - regions: Landmark regions captured

    Raises:
        HTTPException: If decoding or face detection fails
    """
    try:
        logger.info("Decoding enrollment image...")
        image = decode_base64_image(request_data['image'])

        logger.info("Detecting landmarks...")
        sample = await run_in_threadpool(detect_landmarks, detector, image)

        template = service.enroll(sample)
        await run_in_threadpool(store.put, template)

        return {
            'identity': template.identity,
            'createdAt': template.created_at.isoformat(),
            'regions': [region.value for region in sample]
        }

    except NoFaceDetected as e:
        logger.warning(f"Face detection error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ImageProcessingError as e:
        logger.warning(f"Image error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _internal_error(e)


@router.delete("/enrollment", status_code=status.HTTP_204_NO_CONTENT)
async def reset_enrollment(store: CredentialStore = Depends(get_store)) -> Response:
    """Delete the enrolled face template."""
    store.delete()
    logger.info("Enrollment reset")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/verify", response_model=VerificationResponse)
async def verify_face(
    request_data: ImageRequest,
    detector: LandmarkDetector = Depends(get_detector),
    service: FaceVerificationService = Depends(get_service),
    store: CredentialStore = Depends(get_store)
) -> Dict:
    """Verify the face in the given photo against the enrolled template.

    Args:
        request_data: Dictionary containing the base64-encoded photo.
            - image: Base64 string of the photo to verify

    Returns:
        Dictionary containing verification results:
            - accepted: Boolean indicating if the face matches
            - score: Similarity score (0-1)
            - primaryMood: Highest scoring mood, only when accepted
            - moods: Mood scores sorted by score, only when accepted

    Raises:
        HTTPException: If no template is enrolled, the template is corrupt,
            or decoding or face detection fails
    """
    try:
        template = store.get()
        if template is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No reference data")

        logger.info("Decoding probe image...")
        image = decode_base64_image(request_data['image'])

        logger.info("Detecting landmarks...")
        probe = await run_in_threadpool(detect_landmarks, detector, image)

        outcome = await run_in_threadpool(service.verify, template, probe)

        if not outcome.accepted:
            return {
                'accepted': False,
                'score': round(outcome.score, 4),
                'primaryMood': None,
                'moods': []
            }

        primary = outcome.mood.primary
        return {
            'accepted': True,
            'score': round(outcome.score, 4),
            'primaryMood': primary.value if primary is not None else None,
            'moods': _mood_scores(outcome.mood)
        }

    except HTTPException:
        raise
    except TemplateCorrupt as e:
        logger.warning(f"Template error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except NoFaceDetected as e:
        logger.warning(f"Face detection error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ImageProcessingError as e:
        logger.warning(f"Image error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _internal_error(e)
