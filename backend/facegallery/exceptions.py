"""
Exception hierarchy for the face gallery service.
Every error carries a machine-readable code and the HTTP status it maps to.
"""
from typing import Any, Dict, Optional


class FaceGalleryError(Exception):
    """Base class for all service errors."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


# === Input errors ===

class InvalidRequestError(FaceGalleryError):
    code = "INVALID_REQUEST"
    status_code = 400


class InvalidImageError(FaceGalleryError):
    """Image bytes could not be decoded or use an unsupported format."""

    code = "INVALID_IMAGE"
    status_code = 415

    def __init__(self, reason: str = "Unsupported or corrupt image"):
        super().__init__(reason)


class MultipleFacesError(FaceGalleryError):
    """A training sample holds more than one face."""

    code = "MULTIPLE_FACES"
    status_code = 422

    def __init__(self, count: int, source: Optional[str] = None):
        message = f"Expected a single face, found {count}"
        if source:
            message = f"{message} in {source}"
        super().__init__(message, {"faces": count})
        self.count = count


# === Engine and storage errors ===

class EngineError(FaceGalleryError):
    """The detection/embedding engine failed internally."""

    code = "ENGINE_ERROR"
    status_code = 500


class StorageError(FaceGalleryError):
    """Sample files or the training root could not be read or written."""

    code = "STORAGE_ERROR"
    status_code = 500


# === State errors ===

class RebuildInProgressError(FaceGalleryError):
    code = "REBUILD_IN_PROGRESS"
    status_code = 409

    def __init__(self):
        super().__init__("A gallery rebuild is already running")


class TaskNotFoundError(FaceGalleryError):
    code = "TASK_NOT_FOUND"
    status_code = 404

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
