"""
Training sample management: one directory of raw images per identity.
"""
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from . import config
from .exceptions import InvalidRequestError, StorageError
from .utils import image_extension

logger = logging.getLogger(__name__)


def parse_identity(name: str) -> Optional[int]:
    """Parse a directory name as an identity label.

    Only the canonical decimal form is accepted, so ``"7"`` and ``"-2"``
    parse while ``"07"``, ``"+7"`` and ``"7 "`` do not.
    """
    try:
        value = int(name)
    except ValueError:
        return None
    return value if str(value) == name else None


class SampleStore:
    """On-disk store of labeled training images.

    Layout: ``<root>/<identity>/<identity>_<timestamp>_<id><ext>``. Files are
    written once and never modified.
    """

    def __init__(self, root: Union[str, Path] = config.TRAINING_DIR):
        self.root = Path(root)

    def identity_dir(self, identity: int) -> Path:
        return self.root / str(identity)

    def list_identities(self) -> List[Tuple[int, List[Path]]]:
        """Every identity with its sample files, identities ascending, samples in submission order.

        Entries whose name is not a valid label are logged and skipped.
        Raises StorageError if the training root exists but cannot be read.
        """
        if not self.root.exists():
            logger.warning(f"Training directory does not exist: {self.root}")
            return []

        try:
            with os.scandir(self.root) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise StorageError(f"Failed to read training dir {self.root}: {e.strerror or str(e)}")

        identities = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if not entry.is_dir():
                logger.warning(f"Skipping file outside an identity directory: {entry.name}")
                continue
            identity = parse_identity(entry.name)
            if identity is None:
                logger.warning(f"Skipping directory with invalid identity label: {entry.name}")
                continue
            identities.append((identity, self._samples(Path(entry.path))))

        identities.sort(key=lambda item: item[0])
        return identities

    def _samples(self, label_dir: Path) -> List[Path]:
        try:
            names = sorted(os.listdir(label_dir))
        except OSError as e:
            logger.error(f"Skipping unreadable identity directory {label_dir.name}: {e.strerror or str(e)}")
            return []

        samples = []
        for name in names:
            if name.startswith("."):
                continue
            if not name.lower().endswith(config.ALLOWED_EXT):
                logger.warning(f"Skipping non-image file {label_dir.name}/{name}")
                continue
            samples.append(label_dir / name)
        return samples

    def add_sample(self, identity: int, data: bytes) -> Path:
        """Persist a raw training image for an identity and return its path."""
        if isinstance(identity, bool) or not isinstance(identity, int):
            raise InvalidRequestError(f"Invalid identity label: {identity!r}")

        ext = image_extension(data)

        label_dir = self.identity_dir(identity)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        fname = f"{identity}_{timestamp}_{uuid.uuid4().hex[:8]}{ext}"
        path = label_dir / fname

        try:
            label_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write output file {path}: {e.strerror or str(e)}")

        logger.info(f"Stored sample {identity}/{fname} ({len(data)} bytes)")
        return path

    def summary(self) -> Dict[str, Dict[str, object]]:
        """List all samples organized by identity."""
        labels = {}
        for identity, samples in self.list_identities():
            labels[str(identity)] = {
                "count": len(samples),
                "files": [
                    {"id": p.stem, "path": f"{identity}/{p.name}", "filename": p.name}
                    for p in samples
                ],
            }
        return labels
