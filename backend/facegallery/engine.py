"""
DeepFace binding: face detection and embedding.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from deepface import DeepFace

from . import config
from .exceptions import EngineError
from .models import DetectedFace
from .utils import as_descriptor

logger = logging.getLogger(__name__)

# DeepFace signals "nothing found" with a ValueError carrying this message
NO_FACE_MESSAGE = "Face could not be detected"


class DeepFaceEngine:
    """Detection/embedding engine backed by DeepFace.

    The model is built once on construction; a missing or corrupt model
    fails here rather than on the first request.
    """

    def __init__(
        self,
        model_name: str = config.MODEL_NAME,
        home: Optional[Union[str, Path]] = config.MODELS_DIR,
        default_threshold: float = config.IDENTITY_THRESHOLD,
    ):
        if home is not None:
            Path(home).mkdir(parents=True, exist_ok=True)
            os.environ["DEEPFACE_HOME"] = str(home)

        self.model_name = model_name
        self.default_threshold = default_threshold

        logger.info(f"Building recognition model {model_name}...")
        try:
            DeepFace.build_model(model_name)
        except Exception as e:
            raise EngineError(f"Failed to create recognizer: {str(e)}")

    def detect(self, image: np.ndarray, detector_backend: str) -> List[DetectedFace]:
        """Return every face in a BGR image, in detector order.

        An image without faces yields an empty list; every other failure is
        raised as EngineError.
        """
        try:
            embedding_objs = DeepFace.represent(
                img_path=image,
                model_name=self.model_name,
                detector_backend=detector_backend,
                enforce_detection=True,
                align=True,
            )
        except ValueError as e:
            if NO_FACE_MESSAGE in str(e):
                return []
            raise EngineError(f"Failed to recognize face: {str(e)}")
        except Exception as e:
            raise EngineError(f"Failed to recognize face: {str(e)}")

        try:
            return [
                DetectedFace(
                    descriptor=as_descriptor(obj["embedding"]),
                    facial_area={k: int(v) for k, v in (obj.get("facial_area") or {}).items()
                                 if isinstance(v, (int, float))},
                    confidence=float(obj.get("face_confidence") or 0.0),
                )
                for obj in embedding_objs or []
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise EngineError(f"Unexpected engine output: {str(e)}")
