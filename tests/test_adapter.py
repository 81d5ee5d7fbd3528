from __future__ import annotations

import numpy as np
import pytest

from facegallery.adapter import RecognitionAdapter, parse_mode, primary_face
from facegallery.config import Mode
from facegallery.exceptions import (
    EngineError,
    InvalidImageError,
    InvalidRequestError,
    MultipleFacesError,
    StorageError,
)
from facegallery.gallery import Gallery
from facegallery.models import DetectedFace

from conftest import (
    BLACK,
    ENGINE_CRASH,
    FACE_A,
    FACES_A_AND_B,
    VEC_A,
    VEC_B,
    VEC_NEAR_A,
    make_png,
    write_sample,
)

BACKENDS = {Mode.FAST: "fast-detector", Mode.ACCURATE: "accurate-detector"}


@pytest.fixture
def adapter(engine):
    return RecognitionAdapter(engine, BACKENDS)


def test_parse_mode():
    assert parse_mode("fast") is Mode.FAST
    assert parse_mode(Mode.ACCURATE) is Mode.ACCURATE
    assert parse_mode(None) is None
    with pytest.raises(InvalidRequestError):
        parse_mode("turbo")


def test_mode_selects_the_detector_backend(adapter, engine):
    adapter.embed_from_bytes(make_png(FACE_A), Mode.FAST, multiple=False)
    adapter.embed_from_bytes(make_png(FACE_A), "accurate", multiple=False)

    assert engine.calls == [(FACE_A, "fast-detector"), (FACE_A, "accurate-detector")]


def test_single_face_request_returns_the_primary_face(adapter):
    descriptors = adapter.embed_from_bytes(make_png(FACES_A_AND_B), Mode.FAST, multiple=False)

    assert len(descriptors) == 1
    np.testing.assert_array_equal(descriptors[0], VEC_B)


def test_multiple_face_request_keeps_detection_order(adapter):
    descriptors = adapter.embed_from_bytes(make_png(FACES_A_AND_B), Mode.FAST, multiple=True)

    assert len(descriptors) == 2
    np.testing.assert_array_equal(descriptors[0], VEC_A)
    np.testing.assert_array_equal(descriptors[1], VEC_B)


@pytest.mark.parametrize("multiple", [False, True])
def test_no_face_is_an_empty_result(adapter, multiple):
    assert adapter.embed_from_bytes(make_png(BLACK), Mode.FAST, multiple=multiple) == []


def test_undecodable_bytes_are_an_input_error(adapter):
    with pytest.raises(InvalidImageError):
        adapter.embed_from_bytes(b"\x00\x01garbage", Mode.FAST, multiple=True)


def test_engine_failure_is_not_reported_as_no_face(adapter):
    with pytest.raises(EngineError):
        adapter.embed_from_bytes(make_png(ENGINE_CRASH), Mode.FAST, multiple=False)


def test_primary_face_ties():
    small = DetectedFace(VEC_A, {"w": 10, "h": 10}, 0.9)
    large = DetectedFace(VEC_B, {"w": 50, "h": 50}, 0.9)
    twin = DetectedFace(VEC_NEAR_A, {"w": 50, "h": 50}, 0.9)

    assert primary_face([]) is None
    assert primary_face([small, large]) is large
    assert primary_face([large, twin]) is large


def test_embed_from_file(adapter, training_dir):
    one = write_sample(training_dir, "1", "one.png", FACE_A)
    none = write_sample(training_dir, "1", "none.png", BLACK)

    np.testing.assert_array_equal(adapter.embed_from_file(one, Mode.FAST), VEC_A)
    assert adapter.embed_from_file(none, Mode.FAST) is None


def test_embed_from_file_rejects_multi_face_images(adapter, training_dir):
    group = write_sample(training_dir, "1", "group.png", FACES_A_AND_B)

    with pytest.raises(MultipleFacesError) as excinfo:
        adapter.embed_from_file(group, Mode.FAST)
    assert excinfo.value.count == 2


def test_embed_from_file_errors(adapter, training_dir):
    corrupt = training_dir / "1" / "corrupt.jpg"
    corrupt.parent.mkdir(parents=True)
    corrupt.write_bytes(b"not a jpeg")

    with pytest.raises(StorageError):
        adapter.embed_from_file(training_dir / "1" / "missing.png", Mode.FAST)
    with pytest.raises(InvalidImageError):
        adapter.embed_from_file(corrupt, Mode.FAST)


def test_classify_uses_the_engine_default_threshold(adapter, engine):
    gallery = Gallery([VEC_A], [1])

    # ~0.106 from VEC_A: inside the 0.30 default, outside an explicit 0.05
    assert adapter.classify(VEC_NEAR_A, gallery) == 1
    assert adapter.classify(VEC_NEAR_A, gallery, threshold=0.05) is None

    engine.default_threshold = 0.05
    assert adapter.classify(VEC_NEAR_A, gallery) is None
