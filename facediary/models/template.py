"""Enrollment template and verification outcome values."""

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import TemplateCorrupt
from .mood import MoodDistribution


@dataclass(frozen=True)
class EnrollmentTemplate:
    """Persisted reference for later verification.

    ``landmarks`` is the serialized form of a ``LandmarkRegionSet`` and is
    decoded only by the verification service.
    """

    identity: str
    created_at: datetime
    landmarks: bytes

    def to_json(self) -> str:
        return json.dumps({
            'identity': self.identity,
            'created_at': self.created_at.isoformat(),
            'landmarks': base64.b64encode(self.landmarks).decode('ascii'),
        })

    @classmethod
    def from_json(cls, text: str) -> "EnrollmentTemplate":
        """Parse the ``to_json`` form.

        Raises:
            TemplateCorrupt: If any field is missing or malformed.
        """
        try:
            data = json.loads(text)
            created_at = datetime.fromisoformat(data['created_at'])
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            return cls(
                identity=str(data['identity']),
                created_at=created_at,
                landmarks=base64.b64decode(data['landmarks'], validate=True),
            )
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            raise TemplateCorrupt(f"Failed to decode enrollment template: {str(e)}")


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verifying a probe against a template.

    ``mood`` is set only when ``accepted`` is true.
    """

    accepted: bool
    score: float
    mood: Optional[MoodDistribution] = None

    def __post_init__(self):
        if not self.accepted and self.mood is not None:
            raise ValueError("A rejected outcome cannot carry a mood distribution")
