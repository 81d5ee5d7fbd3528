"""
Central configuration for the face gallery service.
Modify here (or through the environment) rather than scattering constants through the code.
"""
import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional


class Mode(str, Enum):
    """Detection strategy."""
    FAST = "fast"
    ACCURATE = "accurate"


class SamplePolicy(str, Enum):
    """How many training samples per identity go into the gallery."""
    FIRST = "first"
    ALL = "all"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "1" if default else "0").lower() in ("1", "true", "yes")


# Where training samples live: one directory per identity label
TRAINING_DIR = Path(os.getenv("FACE_TRAINING_DIR", "data/training"))

# DeepFace weights directory (exported as DEEPFACE_HOME)
MODELS_DIR = Path(os.getenv("FACE_MODELS_DIR", "data/models"))

# Face recognition model
MODEL_NAME = os.getenv("FACE_MODEL_NAME", "Facenet")

# Detector backends per mode
FAST_DETECTOR = os.getenv("FACE_FAST_DETECTOR", "opencv")
ACCURATE_DETECTOR = os.getenv("FACE_ACCURATE_DETECTOR", "retinaface")
DETECTOR_BACKENDS = {
    Mode.FAST: FAST_DETECTOR,
    Mode.ACCURATE: ACCURATE_DETECTOR,
}
DEFAULT_MODE = Mode(os.getenv("FACE_DEFAULT_MODE", Mode.ACCURATE.value))

# Maximum cosine distance for deciding "same person"
IDENTITY_THRESHOLD = float(os.getenv("FACE_IDENTITY_THRESHOLD", "0.30"))

SAMPLE_POLICY = SamplePolicy(os.getenv("FACE_SAMPLE_POLICY", SamplePolicy.ALL.value))

REBUILD_ON_STARTUP = _env_bool("FACE_REBUILD_ON_STARTUP", True)

# Background task workers
MAX_WORKERS = int(os.getenv("FACE_MAX_WORKERS", "2"))
TASK_MAX_AGE = int(os.getenv("FACE_TASK_MAX_AGE", "3600"))

HOST = os.getenv("FACE_HOST", "0.0.0.0")
PORT = int(os.getenv("FACE_PORT", "1234"))
LOG_LEVEL = os.getenv("FACE_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Accepted image file extensions
ALLOWED_EXT = (".jpg", ".jpeg", ".png", ".webp")


@dataclass(frozen=True)
class RecognitionConfig:
    """Service-level recognition defaults.

    Request overrides are merged once, at the HTTP boundary, with
    ``with_overrides``; everything below works on a complete config.

    Attributes:
        mode: detection strategy used when a request does not name one
        threshold: maximum cosine distance accepted as a match
        sample_policy: gallery construction policy for rebuilds
    """
    mode: Mode = Mode.ACCURATE
    threshold: float = IDENTITY_THRESHOLD
    sample_policy: SamplePolicy = SamplePolicy.ALL

    @classmethod
    def from_env(cls) -> "RecognitionConfig":
        return cls(mode=DEFAULT_MODE, threshold=IDENTITY_THRESHOLD, sample_policy=SAMPLE_POLICY)

    def with_overrides(
        self,
        mode: Optional[Mode] = None,
        threshold: Optional[float] = None,
        sample_policy: Optional[SamplePolicy] = None,
    ) -> "RecognitionConfig":
        changes = {}
        if mode is not None:
            changes["mode"] = Mode(mode)
        if threshold is not None:
            changes["threshold"] = float(threshold)
        if sample_policy is not None:
            changes["sample_policy"] = SamplePolicy(sample_policy)
        return replace(self, **changes) if changes else self
