"""
Wiring of the store, engine adapter, gallery registry, builder and recognizer.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from . import config
from .adapter import RecognitionAdapter
from .builder import GalleryBuilder
from .config import RecognitionConfig
from .gallery import GalleryRegistry
from .recognition import FaceRecognizer
from .samples import SampleStore
from .tasks import TaskRunner

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: RecognitionConfig
    store: SampleStore
    adapter: RecognitionAdapter
    registry: GalleryRegistry
    builder: GalleryBuilder
    recognizer: FaceRecognizer
    runner: TaskRunner


def default_engine():
    """Create the DeepFace engine (imported lazily: it pulls in TensorFlow)."""
    from .engine import DeepFaceEngine

    return DeepFaceEngine(model_name=config.MODEL_NAME, home=config.MODELS_DIR)


def build_services(
    engine=None,
    training_dir: Optional[Union[str, Path]] = None,
    recognition_config: Optional[RecognitionConfig] = None,
    runner: Optional[TaskRunner] = None,
) -> Services:
    cfg = recognition_config or RecognitionConfig.from_env()
    if engine is None:
        engine = default_engine()

    store = SampleStore(training_dir if training_dir is not None else config.TRAINING_DIR)
    adapter = RecognitionAdapter(engine)
    registry = GalleryRegistry()

    return Services(
        config=cfg,
        store=store,
        adapter=adapter,
        registry=registry,
        builder=GalleryBuilder(store, adapter, registry, cfg),
        recognizer=FaceRecognizer(adapter, registry, cfg),
        runner=runner or TaskRunner(),
    )
