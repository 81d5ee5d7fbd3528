#!/usr/bin/env python3
"""
Bulk import of training samples into the face gallery sample store.

Two folder layouts are accepted:
1. One sub-folder per identity (``<folder>/<identity>/*.jpg``)
2. A flat folder of images for a single identity (``--identity``)

Optionally triggers a gallery rebuild on a running service afterwards.

Usage:
  python import_samples.py --folder /path/to/people
  python import_samples.py --folder /path/to/person --identity 7 --train http://localhost:1234
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from facegallery import config
from facegallery.client import FaceGalleryClient
from facegallery.exceptions import FaceGalleryError
from facegallery.samples import SampleStore, parse_identity

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def list_images(folder: Path) -> List[Path]:
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in config.ALLOWED_EXT)


def collect(folder: Path, identity: Optional[int] = None) -> List[Tuple[int, Path]]:
    """Return ``(identity, image path)`` pairs to import."""
    if identity is not None:
        return [(identity, p) for p in list_images(folder)]

    pairs = []
    for sub in sorted(p for p in folder.iterdir() if p.is_dir()):
        label = parse_identity(sub.name)
        if label is None:
            logger.warning(f"Skipping folder with invalid identity label: {sub.name}")
            continue
        pairs.extend((label, p) for p in list_images(sub))
    return pairs


def import_samples(store: SampleStore, pairs: List[Tuple[int, Path]]) -> Tuple[int, int]:
    """Copy images into the store. Returns (imported, failed)."""
    imported = 0
    failed = 0
    for identity, path in tqdm(pairs, desc="Importing samples"):
        try:
            store.add_sample(identity, path.read_bytes())
            imported += 1
        except (OSError, FaceGalleryError) as e:
            logger.warning(f"Error importing {path}: {str(e)}")
            failed += 1
    return imported, failed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import labeled face images into the training sample store")

    parser.add_argument("--folder", type=str, required=True, help="Folder of identity sub-folders (or images with --identity)")
    parser.add_argument("--identity", type=int, default=None, help="Identity label for a flat folder of images")
    parser.add_argument("--training-dir", type=str, default=str(config.TRAINING_DIR),
                        help=f"Sample store root (default: {config.TRAINING_DIR})")
    parser.add_argument("--train", type=str, default=None, metavar="API_URL",
                        help="Rebuild the gallery on this running service after importing")

    args = parser.parse_args(argv)

    if not os.path.isdir(args.folder):
        logger.error(f"Folder not found: {args.folder}")
        return 1

    start_time = time.time()

    pairs = collect(Path(args.folder), args.identity)
    if not pairs:
        logger.warning(f"No images found in {args.folder}")
        return 1

    store = SampleStore(args.training_dir)
    imported, failed = import_samples(store, pairs)

    logger.info("=== Summary ===")
    logger.info(f"Identities: {len({identity for identity, _ in pairs})}")
    logger.info(f"Images imported: {imported}")
    logger.info(f"Images failed: {failed}")

    if args.train:
        report = FaceGalleryClient(args.train).train()
        gallery = report["gallery"]
        logger.info(f"Gallery v{gallery['version']} rebuilt: {gallery['entries']} entries, {report['skipped']} skipped")

    logger.info(f"Total time: {time.time() - start_time:.2f} seconds")
    return 0 if failed == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
