import numpy as np
import pytest

from biocore import operations
from biocore.algorithms.core import remove_indices
from biocore.errors import NullStageError, ThresholdError
from biocore.galleries import make_gallery
from conftest import reds


def test_remove_indices_deletes_highest_first():
    ascending = list("abcde")
    for index in [1, 3]:
        del ascending[index]
    assert ascending == ["a", "c", "d"]

    assert remove_indices(list("abcde"), [1, 3]) == ["a", "c", "e"]
    assert remove_indices(list("abcde"), [3, 1, 3]) == ["a", "c", "e"]


def test_deduplicate_keeps_first_occurrences(registry, image_dir, tmp_path):
    folder = image_dir("faces", reds(10, 10, 200, 10, 90))
    output = tmp_path / "unique.gal"
    kept = registry.get_algorithm("FaceDetect:L2").deduplicate(str(folder), str(output), -1)

    expected = [str(folder / name) for name in ("000.png", "002.png", "004.png")]
    assert [record.name for record in kept] == expected

    gallery = make_gallery(str(output))
    stored = gallery.read()
    gallery.close()
    assert [record.name for record in stored] == expected
    np.testing.assert_allclose([record.data[0] for record in stored], [10, 200, 90])


def test_deduplicate_without_duplicates_keeps_everything(registry, image_dir, tmp_path):
    folder = image_dir("faces", reds(10, 50, 90))
    kept = registry.get_algorithm("FaceDetect:L2").deduplicate(str(folder), str(tmp_path / "out.gal"), "-1")
    assert len(kept) == 3


def test_deduplicate_rejects_malformed_threshold(registry, image_dir, tmp_path):
    folder = image_dir("faces", reds(10))
    with pytest.raises(ThresholdError):
        operations.deduplicate(str(folder), str(tmp_path / "out.gal"), "close", algorithm="FaceDetect:L2", registry=registry)
    with pytest.raises(ThresholdError):
        registry.get_algorithm("FaceDetect:L2").deduplicate(str(folder), str(tmp_path / "out.gal"), "close")


def test_deduplicate_needs_a_distance(registry, image_dir, tmp_path):
    folder = image_dir("faces", reds(10))
    with pytest.raises(NullStageError):
        registry.get_algorithm("FaceDetect").deduplicate(str(folder), str(tmp_path / "out.gal"), 0)
