from __future__ import annotations

import struct
import zlib
from pathlib import Path

import cv2
import numpy as np
import pytest

from facegallery.config import Mode, RecognitionConfig, SamplePolicy
from facegallery.exceptions import EngineError
from facegallery.models import DetectedFace
from facegallery.services import build_services
from facegallery.tasks import TaskRunner
from facegallery.utils import as_descriptor

# Reference descriptors
VEC_A = as_descriptor([1.0, 0.0, 0.0, 0.0])
VEC_B = as_descriptor([0.0, 1.0, 0.0, 0.0])
# Close to A (cosine distance ~0.106), far from B
VEC_NEAR_A = as_descriptor([1.0, 0.5, 0.0, 0.0])
VEC_STRANGER = as_descriptor([0.0, 0.0, 1.0, 0.0])

# Pixel values the fake engine understands
BLACK = 0
FACE_A = 10
FACE_B = 20
FACES_A_AND_B = 30
FACE_NEAR_A = 40
ENGINE_CRASH = 50
FACE_STRANGER = 60
RUNTIME_CRASH = 70


def _face(vec, confidence=0.9, w=40, h=40):
    return DetectedFace(descriptor=vec, facial_area={"x": 0, "y": 0, "w": w, "h": h}, confidence=confidence)


class FakeEngine:
    """Engine stand-in: the faces in an image are chosen by its top-left pixel value."""

    default_threshold = 0.30

    def __init__(self):
        self.calls = []
        self.faces = {
            BLACK: [],
            FACE_A: [_face(VEC_A)],
            FACE_B: [_face(VEC_B)],
            FACES_A_AND_B: [_face(VEC_A, confidence=0.80), _face(VEC_B, confidence=0.95)],
            FACE_NEAR_A: [_face(VEC_NEAR_A)],
            FACE_STRANGER: [_face(VEC_STRANGER)],
        }

    def detect(self, image, detector_backend):
        value = int(image[0, 0, 0])
        self.calls.append((value, detector_backend))
        if value == ENGINE_CRASH:
            raise EngineError("Failed to recognize face: simulated crash")
        if value == RUNTIME_CRASH:
            raise RuntimeError("simulated runtime failure")
        return list(self.faces.get(value, []))


def make_png(value: int, size: int = 16) -> bytes:
    ok, buf = cv2.imencode(".png", np.full((size, size, 3), value, dtype=np.uint8))
    assert ok
    return buf.tobytes()


def make_oversized_png(width: int = 15000, height: int = 15000) -> bytes:
    """A PNG whose header declares more pixels than Pillow agrees to decode."""
    def chunk(kind: bytes, body: bytes) -> bytes:
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")


def write_sample(root: Path, label: str, name: str, value: int) -> Path:
    label_dir = root / label
    label_dir.mkdir(parents=True, exist_ok=True)
    path = label_dir / name
    path.write_bytes(make_png(value))
    return path


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def training_dir(tmp_path: Path) -> Path:
    return tmp_path / "training"


@pytest.fixture
def recognition_config():
    return RecognitionConfig(mode=Mode.FAST, threshold=0.30, sample_policy=SamplePolicy.ALL)


@pytest.fixture
def services(engine, training_dir, recognition_config):
    svc = build_services(
        engine=engine,
        training_dir=training_dir,
        recognition_config=recognition_config,
        runner=TaskRunner(max_workers=1, max_age=3600),
    )
    yield svc
    svc.runner.shutdown()
