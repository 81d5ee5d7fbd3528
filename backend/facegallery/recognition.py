"""
Face recognition requests: detect, embed and classify against the active gallery.
"""
import logging
from typing import Optional, Union

from .adapter import RecognitionAdapter, parse_mode
from .config import Mode, RecognitionConfig
from .gallery import GalleryRegistry
from .models import RecognitionResult

logger = logging.getLogger(__name__)


class FaceRecognizer:
    """Serves recognition requests.

    Every face in one request is classified against the same gallery
    snapshot, taken when the request starts; a rebuild finishing mid-request
    only affects later requests.
    """

    def __init__(
        self,
        adapter: RecognitionAdapter,
        registry: GalleryRegistry,
        config: Optional[RecognitionConfig] = None,
    ):
        self.adapter = adapter
        self.registry = registry
        self.config = config or RecognitionConfig.from_env()

    def recognize(
        self,
        data: bytes,
        multiple: bool = False,
        mode: Union[Mode, str, None] = None,
        threshold: Optional[float] = None,
    ) -> RecognitionResult:
        """Identify the face (or faces) in an image.

        Args:
            data: raw image bytes
            multiple: classify every detected face instead of only the primary one
            mode: detection mode override
            threshold: maximum cosine distance override

        Returns:
            RecognitionResult with one label per face (None for unknown faces)
            and ``no_face`` set when nothing was detected.

        Raises:
            InvalidImageError: the bytes are not a decodable image
            EngineError: the engine failed
        """
        cfg = self.config.with_overrides(mode=parse_mode(mode), threshold=threshold)
        gallery = self.registry.snapshot()

        descriptors = self.adapter.embed_from_bytes(data, cfg.mode, multiple)
        if not descriptors:
            logger.info("No face on image")
            return RecognitionResult(results=[], no_face=True, gallery_version=gallery.version)

        results = [self.adapter.classify(d, gallery, cfg.threshold) for d in descriptors]
        logger.info(
            f"Recognized {len(results)} face(s) against gallery v{gallery.version} "
            f"(mode={cfg.mode.value}, threshold={cfg.threshold}): {results}"
        )
        return RecognitionResult(results=results, no_face=False, gallery_version=gallery.version)
