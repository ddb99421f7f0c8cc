import numpy as np
import pytest

from biocore.errors import CardinalityMismatchError, NullStageError
from biocore.outputs import read_matrix
from conftest import reds


def test_pairwise_requires_equal_sizes(registry, image_dir, tmp_path):
    targets = image_dir("targets", reds(1, 2, 3))
    queries = image_dir("queries", reds(1, 2, 3, 4))
    output = tmp_path / "pairs.npy"
    with pytest.raises(CardinalityMismatchError):
        registry.get_algorithm("FaceDetect:L2").pairwise_compare(str(targets), str(queries), str(output))
    assert not output.exists()


def test_pairwise_scores_matching_positions(registry, image_dir, tmp_path):
    targets = image_dir("targets", reds(10, 20, 30))
    queries = image_dir("queries", reds(1, 2, 3))
    registry.get_algorithm("FaceDetect:Shift").pairwise_compare(str(targets), str(queries), str(tmp_path / "pairs.npy"))

    matrix, target_records, query_records = read_matrix(tmp_path / "pairs.npy")
    assert matrix.shape == (1, 3)
    np.testing.assert_allclose(matrix[0], [10001, 20002, 30003])
    assert len(target_records) == 3
    assert [record.name for record in query_records] == [str(queries / "000.png")]


def test_pairwise_with_same_gallery(registry, image_dir, tmp_path):
    folder = image_dir("faces", reds(4, 7))
    registry.get_algorithm("FaceDetect:L2").pairwise_compare(str(folder), ".", str(tmp_path / "pairs.npy"))
    matrix, _, _ = read_matrix(tmp_path / "pairs.npy")
    np.testing.assert_allclose(matrix, [[0, 0]])


def test_pairwise_needs_a_distance(registry, image_dir):
    folder = image_dir("faces", reds(1))
    with pytest.raises(NullStageError):
        registry.get_algorithm("FaceDetect!CustomCompare").pairwise_compare(str(folder), str(folder))
