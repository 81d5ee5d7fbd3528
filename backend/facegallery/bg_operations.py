"""
Background operations for the face gallery service.

This module wraps rebuilds and recognitions so they can run on the
background task runner; results are stored as JSON-ready dictionaries.
"""
from typing import Any, Dict, Optional

from .builder import GalleryBuilder
from .config import Mode
from .recognition import FaceRecognizer
from .tasks import TaskRunner


def bg_rebuild(runner: TaskRunner, builder: GalleryBuilder, mode: Optional[Mode] = None) -> str:
    """Submit a gallery rebuild for background processing.

    Returns:
        Task ID for status checking
    """
    return runner.submit("train", _rebuild_sync, builder, mode)


def _rebuild_sync(builder: GalleryBuilder, mode: Optional[Mode] = None) -> Dict[str, Any]:
    return builder.rebuild(mode=mode).to_dict()


def bg_recognize(
    runner: TaskRunner,
    recognizer: FaceRecognizer,
    image_bytes: bytes,
    multiple: bool = False,
    mode: Optional[Mode] = None,
    threshold: Optional[float] = None,
) -> str:
    """Submit face recognition for background processing.

    Returns:
        Task ID for status checking
    """
    return runner.submit("recognize", _recognize_sync, recognizer, image_bytes, multiple, mode, threshold)


def _recognize_sync(
    recognizer: FaceRecognizer,
    image_bytes: bytes,
    multiple: bool,
    mode: Optional[Mode],
    threshold: Optional[float],
) -> Dict[str, Any]:
    return recognizer.recognize(image_bytes, multiple=multiple, mode=mode, threshold=threshold).to_dict()
