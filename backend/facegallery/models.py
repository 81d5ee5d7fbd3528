"""
Domain records passed between the store, the builder and the recognizer.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .gallery import Gallery

# Per-sample rebuild outcomes
TRAINED = "trained"
NO_FACE = "no_face"
MULTIPLE_FACES = "multiple_faces"
FAILED = "error"
NOT_USED = "not_used"


@dataclass(frozen=True)
class DetectedFace:
    """One face found by the engine."""
    descriptor: np.ndarray
    facial_area: Dict[str, int] = field(default_factory=dict)
    confidence: float = 0.0

    @property
    def area(self) -> int:
        return int(self.facial_area.get("w", 0)) * int(self.facial_area.get("h", 0))


@dataclass(frozen=True)
class SampleOutcome:
    identity: int
    path: Path
    status: str
    detail: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.status not in (TRAINED, NOT_USED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.identity,
            "path": str(self.path),
            "status": self.status,
            "detail": self.detail,
        }


@dataclass
class RebuildReport:
    gallery: Gallery
    outcomes: List[SampleOutcome]

    @property
    def skipped(self) -> List[SampleOutcome]:
        return [o for o in self.outcomes if o.skipped]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "gallery": self.gallery.to_dict(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "skipped": len(self.skipped),
        }


@dataclass
class RecognitionResult:
    """Labels for the faces in one request, ``None`` meaning unknown.

    ``no_face`` is set when detection found nothing; it is an outcome, not an
    error, and it is never represented by an unknown label.
    """
    results: List[Optional[int]]
    no_face: bool
    gallery_version: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": list(self.results),
            "no_face": self.no_face,
            "gallery_version": self.gallery_version,
            "error": None,
        }
