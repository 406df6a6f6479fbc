from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router
from .core.config import Settings, get_settings
from .core.detector import LandmarkDetector
from .core.expression import ExpressionClassifier
from .core.logging import setup_logging
from .core.verification import FaceVerificationService
from .services.credential_store import CredentialStore, FileCredentialStore
from .services.frame_source import CameraFrameSource


def create_app(
    settings: Optional[Settings] = None,
    detector: Optional[LandmarkDetector] = None,
    store: Optional[CredentialStore] = None
) -> FastAPI:
    """Build the API application with its collaborators."""
    settings = settings or get_settings()

    if detector is None:
        # face_recognition loads dlib models on import
        from .core.landmark_detection import FaceLandmarkDetector
        detector = FaceLandmarkDetector(model=settings.detector_model)

    app = FastAPI(title="FaceDiary")

    # Enable CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.detector = detector
    app.state.store = store or FileCredentialStore(settings.template_path)
    app.state.service = FaceVerificationService(
        threshold=settings.match_threshold,
        classifier=ExpressionClassifier(min_confidence=settings.min_mood_confidence)
    )

    # Mount routes
    app.include_router(router, prefix="/api")

    return app


def create_frame_source(settings: Optional[Settings] = None) -> CameraFrameSource:
    """Camera frame source for the configured capture device."""
    settings = settings or get_settings()
    return CameraFrameSource(device=settings.camera_index, fps=settings.camera_fps)


def run() -> None:
    """Serve the API with uvicorn using environment settings."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "facediary.main:create_app",
        factory=True,
        host=settings.server_host,
        port=settings.server_port
    )


if __name__ == "__main__":
    run()
