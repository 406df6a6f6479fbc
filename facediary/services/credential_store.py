"""Enrollment template storage.

Holds at most one template. Writers replace the stored template; readers get
``None`` when nothing has been enrolled.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from typing_extensions import Protocol

from ..models.template import EnrollmentTemplate

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Opaque persistence of one enrollment template."""

    def put(self, template: EnrollmentTemplate) -> None:
        ...

    def get(self) -> Optional[EnrollmentTemplate]:
        ...

    def delete(self) -> None:
        ...


class InMemoryCredentialStore:
    """Credential store kept in process memory."""

    def __init__(self, template: Optional[EnrollmentTemplate] = None):
        self._template = template
        self.writes = 0

    def put(self, template: EnrollmentTemplate) -> None:
        self._template = template
        self.writes += 1

    def get(self) -> Optional[EnrollmentTemplate]:
        return self._template

    def delete(self) -> None:
        self._template = None


class FileCredentialStore:
    """Credential store backed by a single JSON file.

    The file is replaced atomically and readable by the owner only.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def put(self, template: EnrollmentTemplate) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".template-")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(template.to_json())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.info(f"Enrollment template {template.identity} saved to {self.path}")

    def get(self) -> Optional[EnrollmentTemplate]:
        """Load the stored template.

        Returns:
            The template, or None if nothing is stored.

        Raises:
            TemplateCorrupt: If the file exists but cannot be parsed.
        """
        try:
            text = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        return EnrollmentTemplate.from_json(text)

    def delete(self) -> None:
        try:
            self.path.unlink()
            logger.info(f"Enrollment template at {self.path} deleted")
        except FileNotFoundError:
            pass
