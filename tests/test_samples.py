from __future__ import annotations

import pytest

from facegallery.exceptions import InvalidImageError, InvalidRequestError, StorageError
from facegallery.samples import SampleStore, parse_identity

from conftest import FACE_A, make_oversized_png, make_png, write_sample


@pytest.mark.parametrize(
    "name, expected",
    [("7", 7), ("0", 0), ("-2", -2), ("123", 123), ("07", None), ("+7", None), ("7 ", None), ("bob", None), ("", None)],
)
def test_parse_identity(name, expected):
    assert parse_identity(name) == expected


def test_added_sample_is_listed_under_its_identity(training_dir):
    store = SampleStore(training_dir)
    data = make_png(FACE_A)

    path = store.add_sample(7, data)

    assert path.parent == training_dir / "7"
    assert path.suffix == ".png"
    assert path.name.startswith("7_")
    assert path.read_bytes() == data
    assert store.list_identities() == [(7, [path])]


def test_add_sample_names_are_unique(training_dir):
    store = SampleStore(training_dir)
    first = store.add_sample(1, make_png(FACE_A))
    second = store.add_sample(1, make_png(FACE_A))

    assert first != second
    assert len(store.list_identities()[0][1]) == 2


@pytest.mark.parametrize("data", [b"definitely not an image", make_oversized_png()])
def test_add_sample_rejects_undecodable_bytes(training_dir, data):
    store = SampleStore(training_dir)

    with pytest.raises(InvalidImageError):
        store.add_sample(3, data)

    assert not (training_dir / "3").exists()


def test_add_sample_rejects_non_integer_identity(training_dir):
    with pytest.raises(InvalidRequestError):
        SampleStore(training_dir).add_sample("3", make_png(FACE_A))


def test_listing_skips_malformed_entries_and_orders_numerically(training_dir):
    a = write_sample(training_dir, "10", "b.png", FACE_A)
    b = write_sample(training_dir, "2", "a.png", FACE_A)
    write_sample(training_dir, "bob", "x.png", FACE_A)
    write_sample(training_dir, "07", "x.png", FACE_A)
    write_sample(training_dir, ".cache", "x.png", FACE_A)
    (training_dir / "2" / "notes.txt").write_text("not an image")
    (training_dir / "stray.jpg").write_bytes(make_png(FACE_A))

    assert SampleStore(training_dir).list_identities() == [(2, [b]), (10, [a])]


def test_samples_are_listed_in_name_order(training_dir):
    late = write_sample(training_dir, "1", "1_20240102_000000_bbbb.png", FACE_A)
    early = write_sample(training_dir, "1", "1_20240101_000000_aaaa.png", FACE_A)

    assert SampleStore(training_dir).list_identities() == [(1, [early, late])]


def test_missing_root_lists_nothing(tmp_path):
    assert SampleStore(tmp_path / "nowhere").list_identities() == []


def test_unreadable_root_is_a_storage_error(tmp_path):
    root = tmp_path / "training"
    root.write_text("a file, not a directory")

    with pytest.raises(StorageError):
        SampleStore(root).list_identities()


def test_summary(training_dir):
    store = SampleStore(training_dir)
    path = store.add_sample(4, make_png(FACE_A))

    summary = store.summary()

    assert summary["4"]["count"] == 1
    assert summary["4"]["files"][0] == {"id": path.stem, "path": f"4/{path.name}", "filename": path.name}
