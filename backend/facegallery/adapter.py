"""
Recognition engine adapter.

Wraps the detection/embedding engine for both training-time (file-based) and
request-time (in-memory bytes) recognition, and owns the mode and threshold
selection rules.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from . import config
from .config import Mode
from .exceptions import InvalidImageError, InvalidRequestError, MultipleFacesError, StorageError
from .gallery import Gallery
from .models import DetectedFace
from .utils import bgr_from_upload

logger = logging.getLogger(__name__)


def parse_mode(mode: Union[Mode, str, None]) -> Optional[Mode]:
    """Validate a mode override; unknown names are rejected, never coerced."""
    if mode is None or isinstance(mode, Mode):
        return mode
    try:
        return Mode(mode)
    except ValueError:
        allowed = ", ".join(m.value for m in Mode)
        raise InvalidRequestError(f"Unknown mode '{mode}' (expected one of: {allowed})")


def primary_face(faces: List[DetectedFace]) -> Optional[DetectedFace]:
    """Pick the engine's best face: highest confidence, then largest area, then first."""
    if not faces:
        return None
    return max(enumerate(faces), key=lambda item: (item[1].confidence, item[1].area, -item[0]))[1]


class RecognitionAdapter:
    """Engine calls with explicit mode selection.

    Args:
        engine: object exposing ``detect(bgr_image, detector_backend)`` and
            ``default_threshold``
        backends: detector backend name per mode
    """

    def __init__(self, engine, backends: Optional[Dict[Mode, str]] = None):
        self.engine = engine
        self.backends = dict(backends or config.DETECTOR_BACKENDS)

    def backend_for(self, mode: Union[Mode, str]) -> str:
        return self.backends[parse_mode(mode)]

    def _detect(self, data: bytes, mode: Union[Mode, str]) -> List[DetectedFace]:
        image = bgr_from_upload(data)
        return self.engine.detect(image, self.backend_for(mode))

    def embed_from_file(self, path: Union[str, Path], mode: Union[Mode, str]) -> Optional[np.ndarray]:
        """Descriptor of the single face in a training image, or None.

        Raises MultipleFacesError when the image shows more than one face.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read sample {path}: {e.strerror or str(e)}")

        try:
            faces = self._detect(data, mode)
        except InvalidImageError as e:
            raise InvalidImageError(f"{path.name}: {e.message}")

        if not faces:
            return None
        if len(faces) > 1:
            raise MultipleFacesError(len(faces), path.name)
        return faces[0].descriptor

    def embed_from_bytes(self, data: bytes, mode: Union[Mode, str], multiple: bool) -> List[np.ndarray]:
        """Descriptors for an in-memory image.

        With ``multiple`` false at most one descriptor is returned (the primary
        face); otherwise one per detected face, in engine detection order.
        """
        faces = self._detect(data, mode)
        if multiple:
            return [face.descriptor for face in faces]

        face = primary_face(faces)
        return [face.descriptor] if face is not None else []

    def classify(self, descriptor: np.ndarray, gallery: Gallery, threshold: Optional[float] = None) -> Optional[int]:
        """Nearest gallery identity, or None when unknown."""
        if threshold is None:
            threshold = self.engine.default_threshold
        return gallery.classify(descriptor, threshold)
