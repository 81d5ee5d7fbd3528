"""
Classifier state: immutable gallery snapshots and the registry holding the active one.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import EngineError, RebuildInProgressError
from .utils import l2_normalize

logger = logging.getLogger(__name__)


class Gallery:
    """An ordered, read-only set of (descriptor, identity) pairs.

    Descriptors are L2-normalised on construction so a nearest-neighbour
    lookup is one matrix-vector product; the distance reported is the cosine
    distance ``1 - cos(query, entry)``.
    """

    def __init__(
        self,
        descriptors: Sequence[np.ndarray] = (),
        labels: Sequence[int] = (),
        version: int = 0,
        built_at: Optional[float] = None,
    ):
        if len(descriptors) != len(labels):
            raise ValueError(f"{len(descriptors)} descriptors but {len(labels)} labels")

        if len(descriptors):
            matrix = np.stack([np.asarray(d, dtype=np.float32).reshape(-1) for d in descriptors])
            matrix = l2_normalize(matrix)
        else:
            matrix = np.empty((0, 0), dtype=np.float32)
        matrix.setflags(write=False)

        self._matrix = matrix
        self._labels = tuple(int(label) for label in labels)
        self.version = version
        self.built_at = built_at if built_at is not None else time.time()

    def __len__(self) -> int:
        return len(self._labels)

    @property
    def labels(self) -> Tuple[int, ...]:
        return self._labels

    @property
    def dimension(self) -> int:
        return int(self._matrix.shape[1]) if len(self) else 0

    def identities(self) -> List[int]:
        return sorted(set(self._labels))

    def nearest(self, descriptor: np.ndarray) -> Optional[Tuple[int, float]]:
        """Return ``(identity, distance)`` of the closest entry, or None when empty."""
        if not len(self):
            return None

        query = np.asarray(descriptor, dtype=np.float32).reshape(-1)
        if not np.all(np.isfinite(query)):
            raise EngineError("Descriptor contains non-finite values")
        query = l2_normalize(query)
        if query.shape[0] != self.dimension:
            raise EngineError(
                f"Descriptor has {query.shape[0]} dimensions, gallery expects {self.dimension}"
            )

        distances = 1.0 - self._matrix @ query
        # argmin keeps the earliest entry on exact ties
        best = int(np.argmin(distances))
        return self._labels[best], float(distances[best])

    def classify(self, descriptor: np.ndarray, threshold: float) -> Optional[int]:
        match = self.nearest(descriptor)
        if match is None:
            return None
        label, distance = match
        if distance > threshold:
            return None
        return label

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "entries": len(self),
            "identities": self.identities(),
            "dimension": self.dimension,
            "built_at": self.built_at,
        }


class GalleryRegistry:
    """Owner of the active gallery.

    Readers call ``snapshot()`` once per request and keep using that object;
    the builder is the only writer and publishes a whole new gallery with
    ``install()``. ``rebuilding()`` guards the builder so two rebuilds never
    run at once.
    """

    def __init__(self, initial: Optional[Gallery] = None):
        self._active = initial if initial is not None else Gallery()
        self._publish_lock = threading.Lock()
        self._rebuild_lock = threading.Lock()

    def snapshot(self) -> Gallery:
        with self._publish_lock:
            return self._active

    def install(self, descriptors: Sequence[np.ndarray], labels: Sequence[int]) -> Gallery:
        # Build outside the lock; only the pointer swap is serialised with readers
        with self._publish_lock:
            version = self._active.version + 1
        gallery = Gallery(descriptors, labels, version=version)
        with self._publish_lock:
            self._active = gallery
        logger.info(f"Installed gallery v{gallery.version} with {len(gallery)} entries")
        return gallery

    @property
    def is_rebuilding(self) -> bool:
        return self._rebuild_lock.locked()

    @contextmanager
    def rebuilding(self) -> Iterator[None]:
        if not self._rebuild_lock.acquire(blocking=False):
            raise RebuildInProgressError()
        try:
            yield
        finally:
            self._rebuild_lock.release()
